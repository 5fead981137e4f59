from dotenv import load_dotenv

from fastapi import FastAPI

from app.api.api_v1 import router as api_v1
from app.core.lifespan import lifespan

load_dotenv()  # Load .env variables into os.environ for libraries (LangSmith, etc.)


def create_app(lifespan_handler=lifespan) -> FastAPI:
    """
    Build the API application.

    Tests pass `lifespan_handler=None` and populate `app.state` themselves.
    """
    application = FastAPI(title="PR Risk Radar", lifespan=lifespan_handler)
    application.include_router(api_v1, prefix="/api/v1")
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
