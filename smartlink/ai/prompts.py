# smartlink/ai/prompts.py
"""Extraction prompt, prompt version and the function-calling schema."""
from typing import Any, Dict, List, Optional, Sequence

# Bump whenever the prompt or the function schema changes: it is stamped into
# every ExtractedContent and old cache entries keep their original version.
EXTRACTION_PROMPT_VERSION = "v1.0.0"

CATEGORIES = ("article", "book", "video", "tool", "other")
CONTENT_TYPES = ("article", "video", "book", "paper", "other")

SYSTEM_PROMPT = (
    "You are a helpful assistant that extracts metadata from web pages. "
    "Always return valid JSON matching the requested schema."
)

EXTRACTION_PROMPT = """Visit the provided URL and extract the following metadata from the webpage:

1. Title: The main title of the content (prefer article title over site name)
2. Author: The author's name if available
3. Description: A brief description or summary (max 200 characters). If no description is available, create a concise summary based on the content.
4. Image URL: The URL of the main image (OpenGraph image, featured image, or first significant image)
5. Suggested Category: Choose the most appropriate category from: {categories}
6. Tags: Extract 3-5 relevant tags or keywords that describe the content
7. Publication Date: The publication or creation date if available (ISO 8601)
8. Content Type: Identify whether this is an article, video, book, paper, or other

Please ensure:
- Extract information even if it requires inferring from context
- For author, look for bylines, "Posted by", "Written by", etc.
- For dates, check publication dates, post dates, or last updated dates
- For images, prefer high-quality featured images over logos or icons
- Tags should be lowercase and relevant to the main topics

If certain information is not available, omit those fields rather than guessing."""

PAGE_CONTEXT_TEMPLATE = """

The page was fetched for you. Use it as the primary source:
---
{context}
---"""

EXTRACT_FUNCTION_NAME = "extract_content"

EXTRACT_FUNCTION: Dict[str, Any] = {
    "name": EXTRACT_FUNCTION_NAME,
    "description": "Extract metadata from a webpage",
    "parameters": {
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "The main title of the content"},
            "author": {"type": "string", "description": "Author name if found"},
            "description": {"type": "string", "description": "Brief description or summary"},
            "imageUrl": {"type": "string", "description": "URL of the main image"},
            "suggestedCategory": {
                "type": "string",
                "enum": list(CATEGORIES),
                "description": "Suggested category for the content",
            },
            "tags": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Relevant tags or keywords",
            },
            "publicationDate": {"type": "string", "description": "Publication date if available"},
            "contentType": {
                "type": "string",
                "enum": list(CONTENT_TYPES),
                "description": "Type of content",
            },
        },
        "required": ["title"],
    },
}


def build_extraction_prompt(
    categories: Sequence[str] = CATEGORIES,
    page_context: Optional[str] = None
) -> str:
    """
    Build the user prompt for metadata extraction.

    Args:
        categories: Categories the model may suggest
        page_context: Optional text collected from the page itself

    Returns:
        Prompt text; the URL is appended by the LLM client
    """
    prompt = EXTRACTION_PROMPT.format(categories=", ".join(categories))
    if page_context:
        prompt += PAGE_CONTEXT_TEMPLATE.format(context=page_context)
    return prompt


def build_tools() -> List[Dict[str, Any]]:
    """Tool list for chat.completions with the single extraction function."""
    return [{"type": "function", "function": EXTRACT_FUNCTION}]
