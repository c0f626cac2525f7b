from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

class ArticleLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"

@dataclass(frozen=True)
class LengthConfig:
    word_count: str
    max_tokens: int
    temperature: float

LENGTH_CONFIGS: dict[ArticleLength, LengthConfig] = {
    ArticleLength.SHORT: LengthConfig(word_count="300-400", max_tokens=800, temperature=0.7),
    ArticleLength.MEDIUM: LengthConfig(word_count="600-800", max_tokens=1500, temperature=0.7),
    ArticleLength.LONG: LengthConfig(word_count="1000-1200", max_tokens=2000, temperature=0.7),
}

# Subset of the sanitizer allow-list that prompts ask for
ALLOWED_CONTENT_TAGS = ("p", "h2", "h3", "ul", "li", "strong", "em", "blockquote")

RESEARCH_SYSTEM_ROLE = (
    "You are an academic research assistant specialized in generating comprehensive "
    "research articles. You always answer with a single JSON object and nothing else."
)

_JSON_SHAPE = """{
  "title": "Descriptive academic title",
  "content": "Full article content with HTML formatting",
  "summary": "Brief overview of key points",
  "citations": [
    {
      "source": "Journal/Publication name",
      "author": "Author name",
      "year": 2020,
      "url": "source URL if available",
      "quote": "relevant quote from source"
    }
  ]
}"""

_IMAGE_STYLE = """Create a professional academic illustration that:
1. Uses subdued, professional colors
2. Incorporates relevant academic symbols
3. Maintains clean, minimal design
4. Avoids controversial or inappropriate elements
5. Focuses on clarity and information presentation"""

def length_config(length: ArticleLength | str | None) -> LengthConfig:
    return LENGTH_CONFIGS[ArticleLength(length or ArticleLength.MEDIUM)]

def build_research_prompt(topic: str, length: ArticleLength | str = ArticleLength.MEDIUM) -> str:
    """Build the user prompt asking for a full article about ``topic``.

    The prompt pins the word-count range for ``length``, APA citations, the
    HTML subset the content may use and the exact JSON field names the
    validator expects back.
    """
    cfg = length_config(length)
    tags = ", ".join(f"<{t}>" for t in ALLOWED_CONTENT_TAGS)
    return f"""Research Topic: {topic}

Please generate a comprehensive academic article following these requirements:
1. Focus on recent developments and current research
2. Include multiple perspectives and viewpoints
3. Support arguments with empirical evidence
4. Address potential limitations and future research directions
5. Maintain academic rigor and scholarly tone
6. Target word count: {cfg.word_count} words
7. Include a concise summary
8. Format citations in APA style

Use only these HTML tags in the content: {tags}.
Wrap paragraphs in <p> tags, use <h2> for section headings and <ul>/<li> for lists.

Return the response as a JSON object with exactly these fields:
title, content, summary, citations (each citation: source, author, year, url, quote).
{_JSON_SHAPE}"""

def build_image_prompt(title: str) -> str:
    return f"""{_IMAGE_STYLE}

Topic: {title}

Generate an academic illustration suitable for a research paper or journal article. Do not include any text."""
