"""
Integration tests for API endpoints
"""
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from app.main import app
from app.services.llm import LLMConfigurationError, LLMRequestError
from app.services.pdf_processor import PdfExtractionError

client = TestClient(app)

PDF_UPLOAD = {"pdf": ("notes.pdf", b"%PDF-1.4 test document", "application/pdf")}
COMPLETION = '```json\n[{"question":"What is 2+2?","answer":"4","category":1}]\n```'


@pytest.fixture
def extracted_text():
    with patch("app.routers.flashcards.extract_text_from_pdf", return_value="Two plus two is four.") as mock_extract:
        yield mock_extract


class TestHealthEndpoints:
    def test_health_check(self):
        """Test health check endpoint"""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert "status" in data
        assert "timestamp" in data
        assert set(data["checks"]) == {"llm", "pdf_extractor"}

    def test_metrics_endpoint(self):
        """Test metrics endpoint"""
        response = client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "http_requests_total" in response.text


class TestProcessPdf:
    def test_method_not_allowed(self):
        """GET is not accepted"""
        response = client.get("/api/process-pdf")
        assert response.status_code == 405

    def test_cors_preflight(self):
        """Preflight requests are answered with an open origin"""
        response = client.options(
            "/api/process-pdf",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    def test_missing_file(self):
        """Request without a 'pdf' part is rejected"""
        response = client.post("/api/process-pdf", data={"strict": "false"})
        assert response.status_code == 400
        assert response.json()["detail"] == "No PDF file uploaded"

    def test_not_a_pdf(self):
        """Non-PDF uploads are rejected"""
        response = client.post("/api/process-pdf", files={"pdf": ("notes.txt", b"hello", "text/plain")})
        assert response.status_code == 400

    def test_file_too_large(self):
        """Uploads over the size limit are rejected"""
        with patch("app.config.MAX_FILE_SIZE", 10):
            response = client.post("/api/process-pdf", files=PDF_UPLOAD)
        assert response.status_code == 413

    def test_file_at_size_limit(self, extracted_text):
        """An upload exactly at the size limit is accepted"""
        size = len(PDF_UPLOAD["pdf"][1])
        with patch("app.config.MAX_FILE_SIZE", size), \
                patch("app.routers.flashcards.generate_flashcard_completion", return_value=COMPLETION):
            response = client.post("/api/process-pdf", files=PDF_UPLOAD)
        assert response.status_code == 200
        extracted_text.assert_called_once_with(PDF_UPLOAD["pdf"][1])

    def test_unreadable_pdf(self):
        """Extraction failures are client errors"""
        with patch("app.routers.flashcards.extract_text_from_pdf", side_effect=PdfExtractionError("bad pdf")):
            response = client.post("/api/process-pdf", files=PDF_UPLOAD)
        assert response.status_code == 400

    def test_empty_text(self):
        """PDF with no text is rejected before calling the model"""
        with patch("app.routers.flashcards.extract_text_from_pdf", return_value="  \n "), \
                patch("app.routers.flashcards.generate_flashcard_completion") as mock_llm:
            response = client.post("/api/process-pdf", files=PDF_UPLOAD)
        assert response.status_code == 400
        mock_llm.assert_not_called()

    def test_success(self, extracted_text):
        """Fenced completion is returned as flashcards"""
        with patch("app.routers.flashcards.generate_flashcard_completion", return_value=COMPLETION) as mock_llm:
            response = client.post("/api/process-pdf", files=PDF_UPLOAD)
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "PDF processed successfully"
        assert data["flashcards"] == [{"question": "What is 2+2?", "answer": "4", "category": 1}]
        mock_llm.assert_called_once_with("Two plus two is four.")

    def test_text_is_truncated(self, extracted_text):
        """Model input is capped at the character budget"""
        extracted_text.return_value = "a" * 50
        with patch("app.config.MAX_PDF_CHARS", 20), \
                patch("app.routers.flashcards.generate_flashcard_completion", return_value=COMPLETION) as mock_llm:
            response = client.post("/api/process-pdf", files=PDF_UPLOAD)
        assert response.status_code == 200
        assert mock_llm.call_args[0][0] == "a" * 20

    def test_malformed_completion(self, extracted_text):
        """Unparseable completion is reported as a 422"""
        with patch("app.routers.flashcards.generate_flashcard_completion", return_value="I cannot do that."):
            response = client.post("/api/process-pdf", files=PDF_UPLOAD)
        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["kind"] == "MalformedResponse"
        assert data["preview"] == "I cannot do that."

    def test_strict_form_field(self, extracted_text):
        """Strict policy can be requested per upload"""
        completion = '[{"question": "q", "answer": ""}]'
        with patch("app.routers.flashcards.generate_flashcard_completion", return_value=completion):
            lenient = client.post("/api/process-pdf", files=PDF_UPLOAD)
            strict = client.post("/api/process-pdf", files=PDF_UPLOAD, data={"strict": "true"})
        assert lenient.status_code == 200
        assert lenient.json()["flashcards"][0]["answer"] == "Answer 1"
        assert strict.status_code == 422
        assert strict.json()["kind"] == "InvalidEntry"
        assert strict.json()["index"] == 0

    def test_missing_api_key(self, extracted_text):
        """Missing model credentials are a server error"""
        with patch("app.routers.flashcards.generate_flashcard_completion", side_effect=LLMConfigurationError("no key")):
            response = client.post("/api/process-pdf", files=PDF_UPLOAD)
        assert response.status_code == 500
        assert response.json()["detail"] == "Server configuration error"

    def test_upstream_failure(self, extracted_text):
        """Model API failures are a bad gateway"""
        with patch("app.routers.flashcards.generate_flashcard_completion", side_effect=LLMRequestError("timeout")):
            response = client.post("/api/process-pdf", files=PDF_UPLOAD)
        assert response.status_code == 502


class TestNormalizeEndpoint:
    def test_normalize_wrapped_cards(self):
        """Completion wrapped under 'cards' is normalized"""
        content = '{"cards": [{"question": "q", "answer": "a", "category": "2"}]}'
        response = client.post("/api/flashcards/normalize", json={"content": content})
        assert response.status_code == 200
        assert response.json()["flashcards"] == [{"question": "q", "answer": "a", "category": 2}]

    def test_normalize_truncates(self):
        """At most 15 cards are returned"""
        entries = ",".join(f'{{"question": "q{i}", "answer": "a{i}"}}' for i in range(20))
        response = client.post("/api/flashcards/normalize", json={"content": f"[{entries}]"})
        assert response.status_code == 200
        assert len(response.json()["flashcards"]) == 15

    def test_normalize_invalid_shape(self):
        """Scalar completion is an invalid shape"""
        response = client.post("/api/flashcards/normalize", json={"content": '"just text"'})
        assert response.status_code == 422
        assert response.json()["kind"] == "InvalidShape"

    def test_normalize_empty(self):
        """Empty list yields NoFlashcards"""
        response = client.post("/api/flashcards/normalize", json={"content": '{"flashcards": []}'})
        assert response.status_code == 422
        assert response.json()["kind"] == "NoFlashcards"


def generation_count(generation_type, status):
    return REGISTRY.get_sample_value(
        "ai_generation_requests_total", {"type": generation_type, "status": status}
    ) or 0.0


class TestGenerationMetrics:
    def test_normalize_outcomes_labelled_separately(self):
        """Normalize endpoint outcomes do not count as PDF generations"""
        pdf_failures = generation_count("flashcards", "NoFlashcards")
        normalize_failures = generation_count("normalize", "NoFlashcards")
        normalize_successes = generation_count("normalize", "success")

        client.post("/api/flashcards/normalize", json={"content": "[]"})
        client.post("/api/flashcards/normalize", json={"content": '[{"question": "q", "answer": "a"}]'})

        assert generation_count("normalize", "NoFlashcards") == normalize_failures + 1
        assert generation_count("normalize", "success") == normalize_successes + 1
        assert generation_count("flashcards", "NoFlashcards") == pdf_failures

    def test_pdf_failures_labelled_flashcards(self, extracted_text):
        """Pipeline failures on upload count under the PDF generation type"""
        before = generation_count("flashcards", "MalformedResponse")
        with patch("app.routers.flashcards.generate_flashcard_completion", return_value="no json"):
            client.post("/api/process-pdf", files=PDF_UPLOAD)
        assert generation_count("flashcards", "MalformedResponse") == before + 1
