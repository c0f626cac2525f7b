from app.models.user import User
from app.models.article import Article
from app.models.citation import Citation

__all__ = ["User", "Article", "Citation"]
