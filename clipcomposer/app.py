from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError

try:
    from clip_validator import ScalePolicy
    from compose import compose
    from config import Settings, get_settings
    from constants import APP_NAME, EXPORT_FILENAME
    from errors import ClipError
    from llm_client import ModelClient, make_model_client
    from logger_config import logger
    from models import ClipDocument, ComposeParams
    from smf_encoder import encode_clip
except ImportError:
    from .clip_validator import ScalePolicy
    from .compose import compose
    from .config import Settings, get_settings
    from .constants import APP_NAME, EXPORT_FILENAME
    from .errors import ClipError
    from .llm_client import ModelClient, make_model_client
    from .logger_config import logger
    from .models import ClipDocument, ComposeParams
    from .smf_encoder import encode_clip

app = FastAPI(title=APP_NAME)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ClipError)
def clip_error_handler(_: Request, exc: ClipError) -> PlainTextResponse:
    logger.warning("Request failed: %s", exc.render())
    return PlainTextResponse(exc.render(), status_code=exc.status_code)


def get_model_client(settings: Settings = Depends(get_settings)) -> ModelClient:
    return make_model_client(
        settings.provider_name,
        settings.provider_model,
        settings.base_url,
        settings.provider_api_key,
    )


def get_scale_policy(settings: Settings = Depends(get_settings)) -> ScalePolicy:
    return settings.scale_policy


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/compose")
def compose_clip(
    params: Optional[ComposeParams] = None,
    model_client: ModelClient = Depends(get_model_client),
    policy: ScalePolicy = Depends(get_scale_policy),
) -> JSONResponse:
    clip = compose(params or ComposeParams(), model_client, policy)
    return JSONResponse(content=clip)


@app.post("/export/midi")
def export_midi(body: Dict[str, Any] = Body(...)) -> Response:
    try:
        clip = ClipDocument.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    midi_bytes = encode_clip(clip.model_dump())
    logger.info("Exported clip: notes=%d bytes=%d", len(clip.notes), len(midi_bytes))
    return Response(
        content=midi_bytes,
        media_type="audio/midi",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    main()
