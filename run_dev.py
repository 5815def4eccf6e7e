# run_dev.py
"""
Local development launcher for the inference gateway.
Equivalent to: `uvicorn src.app:app --reload --host $HOST --port $PORT`
"""

import os

import uvicorn

from src.settings import settings

if __name__ == "__main__":
    uvicorn.run(
        "src.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
