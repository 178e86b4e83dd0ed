"""
Run the API with uvicorn: python -m filerelay
"""
import uvicorn

from filerelay.config import settings


def main() -> None:
    uvicorn.run(
        "filerelay.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.reload,
        log_config=None,  # JSON logging is configured in the app lifespan
    )


if __name__ == "__main__":
    main()
