"""
Health checks and monitoring with Prometheus metrics
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import Response
import time
import psutil
import structlog

from app import config

logger = structlog.get_logger()

# Prometheus metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])
AI_GENERATION_REQUESTS = Counter('ai_generation_requests_total', 'Total AI generation requests', ['type', 'status'])
FLASHCARDS_RETURNED = Histogram(
    'flashcards_returned', 'Flashcards returned per successful request',
    buckets=(1, 3, 5, 8, 10, 12, 15)
)

class HealthChecker:
    def __init__(self):
        self.start_time = time.time()

    def check_llm(self) -> dict:
        """Check the model client is configured"""
        if config.OPENAI_API_KEY:
            return {
                "status": "healthy",
                "message": "OpenAI API key configured",
                "model": config.OPENAI_MODEL
            }
        return {
            "status": "unhealthy",
            "message": "OPENAI_API_KEY not set"
        }

    def check_pdf_extractor(self) -> dict:
        """Check the PDF extractor is importable"""
        try:
            import pypdf

            return {
                "status": "healthy",
                "message": "pypdf available",
                "version": pypdf.__version__
            }
        except ImportError as e:
            logger.error(f"PDF extractor health check failed: {e}")
            return {
                "status": "unhealthy",
                "message": f"pypdf not available: {str(e)}"
            }

    def get_system_metrics(self) -> dict:
        """Get system resource metrics"""
        try:
            cpu_percent = psutil.cpu_percent(interval=0.1)
            memory = psutil.virtual_memory()
            disk = psutil.disk_usage('/')

            return {
                "cpu_percent": cpu_percent,
                "memory_percent": memory.percent,
                "memory_available_gb": round(memory.available / (1024**3), 2),
                "disk_percent": disk.percent,
                "disk_free_gb": round(disk.free / (1024**3), 2),
                "uptime_seconds": time.time() - self.start_time
            }
        except Exception as e:
            logger.error(f"System metrics collection failed: {e}")
            return {"error": str(e)}

    def get_application_metrics(self) -> dict:
        """Get application-specific limits"""
        return {
            "max_file_size": config.MAX_FILE_SIZE,
            "max_pdf_chars": config.MAX_PDF_CHARS,
            "max_flashcards": config.MAX_FLASHCARDS,
            "strict_mode": config.FLASHCARD_STRICT
        }

    def get_health_status(self) -> dict:
        """Get overall health status"""
        checks = {
            "llm": self.check_llm(),
            "pdf_extractor": self.check_pdf_extractor()
        }

        system_metrics = self.get_system_metrics()
        app_metrics = self.get_application_metrics()

        # Determine overall status
        unhealthy_checks = [name for name, check in checks.items() if check["status"] == "unhealthy"]
        overall_status = "healthy" if not unhealthy_checks else "unhealthy"

        return {
            "status": overall_status,
            "timestamp": time.time(),
            "checks": checks,
            "system_metrics": system_metrics,
            "application_metrics": app_metrics,
            "unhealthy_components": unhealthy_checks
        }

# Global health checker instance
health_checker = HealthChecker()

def get_metrics():
    """Get Prometheus metrics"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
