import io
import json
import os

import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock, AsyncMock


def pytest_configure():
    os.environ["LLM_PROVIDER"] = "mock"
    os.environ["DATABASE_URL"] = ""
    os.environ["AI_INTERNAL_TOKEN"] = ""
    os.environ.setdefault("OPENAI_API_KEY", "test-key")


@pytest.fixture
def mock_llm_provider():
    """Mock LLM provider for testing without API calls."""
    provider = MagicMock()
    provider.complete = AsyncMock(return_value="Test response")
    return provider


@pytest.fixture
def mock_provider():
    """Deterministic provider returning contract-conforming output."""
    from examiq.services.llm.mock_provider import MockProvider

    return MockProvider()


@pytest.fixture
def memory_store():
    from examiq.services.storage import InMemoryMaterialStore

    return InMemoryMaterialStore()


@pytest.fixture
def sample_text():
    """Sample course material for testing."""
    return """
    Chapter 1: Introduction to Machine Learning

    Machine learning is a subset of artificial intelligence that enables computers to learn
    from data without being explicitly programmed.

    Key Concepts:
    1. Supervised Learning - Learning from labeled data
    2. Unsupervised Learning - Finding patterns in unlabeled data
    3. Reinforcement Learning - Learning through trial and error
    """


@pytest.fixture
def sample_mcq_items():
    """Valid MCQ bank payload."""
    return [
        {
            "question": f"Question {i}: what is supervised learning?",
            "options": {
                "A": "Learning from labeled data",
                "B": "Learning without data",
                "C": "Learning by trial and error",
                "D": "Clustering unlabeled data",
            },
            "correct_answer": "A",
            "explanation": "Supervised learning trains on input-output pairs.",
        }
        for i in range(1, 4)
    ]


def descriptive_items(marks, key_points, count=2):
    return [
        {
            "question": f"Explain concept {i}.",
            "marks": marks,
            "introduction": "Context for the concept.",
            "key_points": [f"Point {n}" for n in range(1, key_points + 1)],
            "conclusion": "Why it matters.",
            "marks_distribution": f"1 mark for intro, {max(marks - 2, 0)} marks for points, 1 mark for conclusion",
        }
        for i in range(1, count + 1)
    ]


@pytest.fixture
def descriptive_payload():
    """Build a JSON descriptive bank for a mark value and key point count."""

    def _build(marks, key_points, count=2):
        return json.dumps(descriptive_items(marks, key_points, count))

    return _build


@pytest.fixture
def pdf_bytes():
    """Single-page PDF generated with PyMuPDF."""
    import pymupdf

    doc = pymupdf.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Neural networks are layered function approximators.")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def blank_pdf_bytes():
    import pymupdf

    doc = pymupdf.open()
    doc.new_page()
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def docx_bytes():
    """DOCX with one paragraph and one table row, generated with python-docx."""
    from docx import Document

    document = Document()
    document.add_paragraph("Gradient descent minimizes a loss function.")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Learning rate"
    table.rows[0].cells[1].text = "Step size"
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def test_client(mock_provider, memory_store):
    """FastAPI test client backed by the mock provider and an in-memory store."""
    from examiq.main import create_app

    app = create_app(provider=mock_provider, store=memory_store)
    return TestClient(app)
