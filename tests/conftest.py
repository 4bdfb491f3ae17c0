# tests/conftest.py
"""Shared fixtures for all tests."""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from smartlink.config import OpenAIConfig
from smartlink.services.extracted_content import ExtractedContent, ExtractionMetadata


# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


# Mock OpenAI responses
@dataclass
class MockFunction:
    name: str
    arguments: str


@dataclass
class MockToolCall:
    function: MockFunction
    id: str = "call_1"
    type: str = "function"


@dataclass
class MockMessage:
    content: Optional[str] = None
    tool_calls: list = field(default_factory=list)


@dataclass
class MockChoice:
    message: MockMessage


@dataclass
class MockChatResponse:
    choices: list


def create_chat_response(content: str):
    """Helper to create a plain-text chat response (no tool call)."""
    return MockChatResponse(choices=[MockChoice(message=MockMessage(content=content))])


def create_tool_call_response(arguments, name: str = "extract_content"):
    """Helper to create a chat response carrying one function call."""
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    message = MockMessage(tool_calls=[MockToolCall(function=MockFunction(name=name, arguments=arguments))])
    return MockChatResponse(choices=[MockChoice(message=message)])


@pytest.fixture
def openai_config():
    """OpenAI config with a fake key."""
    return OpenAIConfig(api_key="sk-test", model="gpt-4o-mini")


@pytest.fixture
def extraction_arguments():
    """Typical function-call arguments for an article."""
    return {
        "title": "Understanding Async Python",
        "author": "Jane Doe",
        "description": "A guide to asyncio.",
        "imageUrl": "https://example.com/cover.png",
        "suggestedCategory": "article",
        "tags": ["python", "asyncio"],
        "publicationDate": "2024-03-01T10:00:00Z",
        "contentType": "article",
    }


@pytest.fixture
def mock_openai_client(extraction_arguments):
    """AsyncOpenAI stand-in answering with extraction_arguments."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=create_tool_call_response(extraction_arguments)
    )
    return client


@pytest.fixture
def sample_content():
    """A fully populated ExtractedContent."""
    return ExtractedContent(
        title="Understanding Async Python",
        author="Jane Doe",
        description="A guide to asyncio.",
        image_url="https://example.com/cover.png",
        suggested_category="article",
        tags=("python", "asyncio"),
        publication_date=datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc),
        content_type="article",
        extraction_metadata=ExtractionMetadata(
            confidence=0.9,
            extracted_at=datetime(2024, 3, 2, 12, 0, tzinfo=timezone.utc),
            llm_model="gpt-4o-mini",
            version="v1.0.0",
        ),
    )


@pytest.fixture
def make_tool_call_response():
    """Factory fixture for function-call responses."""
    return create_tool_call_response


@pytest.fixture
def make_chat_response():
    """Factory fixture for plain-text responses."""
    return create_chat_response
