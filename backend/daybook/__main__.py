"""
Daybook Backend — Server Entry Point
=====================================

Usage:
    python -m daybook        (or the `daybook` console script)

Equivalent to `uvicorn daybook.main:app --host $BACKEND_HOST --port $BACKEND_PORT`.
"""

import uvicorn

from daybook.config import settings


def main() -> None:
    uvicorn.run(
        "daybook.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
