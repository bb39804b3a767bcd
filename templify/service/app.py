"""FastAPI application entrypoint for templify service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import ConfigError, ExtractionOptions
from ..engine import TemplateEngine, analyze_source
from ..errors import InvalidRepositoryReference
from ..models import RepositoryIdentity, StructureAnalysis
from ..sources import LocalRepositorySource


class RepositoryRequest(BaseModel):
    path: str
    repo_url: Optional[str] = None
    name: Optional[str] = None
    owner: str = ""
    branch: Optional[str] = None
    description: Optional[str] = None


class AnalyzeRequest(RepositoryRequest):
    pass


class ExtractRequest(RepositoryRequest):
    options: Dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str


def _default_engine() -> TemplateEngine:
    return TemplateEngine()


def _identity_for(payload: RepositoryRequest, source: LocalRepositorySource) -> RepositoryIdentity:
    if payload.repo_url:
        return RepositoryIdentity.from_url(
            payload.repo_url,
            default_branch=payload.branch,
            description=payload.description,
        )
    return RepositoryIdentity(
        owner=payload.owner,
        name=payload.name or source.root.name,
        default_branch=payload.branch or "main",
        description=payload.description,
    )


async def _in_executor(func: Callable[[], Any]) -> Any:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:  # pragma: no cover - fallback path when not in async context
        return func()
    return await loop.run_in_executor(None, func)


def create_app(
    engine_factory: Callable[[], TemplateEngine] = _default_engine,
) -> FastAPI:
    """Create the FastAPI application exposing templify operations."""

    app = FastAPI(title="Templify Service", version="1.0.0")

    async def get_engine() -> TemplateEngine:
        return engine_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/analyze")
    async def analyze_repo(
        payload: AnalyzeRequest,
        engine: TemplateEngine = Depends(get_engine),
    ) -> Dict[str, Any]:
        def _run_analyze() -> StructureAnalysis:
            source = LocalRepositorySource(payload.path)
            return analyze_source(source, _identity_for(payload, source), engine)

        analysis = await _in_executor(_run_analyze)
        return analysis.to_dict()

    @app.post("/extract")
    async def extract_repo(
        payload: ExtractRequest,
        engine: TemplateEngine = Depends(get_engine),
    ) -> Dict[str, Any]:
        options = ExtractionOptions.from_mapping(payload.options)

        source = await _in_executor(lambda: LocalRepositorySource(payload.path))
        template = await engine.extract_from(source, _identity_for(payload, source), options)
        return template.to_dict()

    @app.exception_handler(InvalidRepositoryReference)
    async def invalid_reference_handler(
        _: Any, exc: InvalidRepositoryReference
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(_: Any, exc: NotADirectoryError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["create_app", "run_service"]
