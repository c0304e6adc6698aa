import uvicorn
from dotenv import load_dotenv

load_dotenv()

from mindlock.config import settings  # noqa: E402

if __name__ == "__main__":
    uvicorn.run(
        "mindlock.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
