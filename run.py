"""
Start the JobApply API with uvicorn
HOST / PORT come from the environment; ENVIRONMENT=development enables reload
"""
import os
import uvicorn

from jobapply.core.config import settings

if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    host = os.getenv("HOST", "0.0.0.0")
    reload = settings.environment == "development"

    print(f"🚀 Starting JobApply API on {host}:{port} ({settings.environment})")

    uvicorn.run(
        "jobapply.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )
