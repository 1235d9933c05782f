"""App factory.

Wiring for:
- Audio generation (/api/v1/audio/generate)
- Audio library CRUD (/api/v1/audio, /api/v1/categories)
- User provisioning (/admin/api/users/*)
- Stored clip files (STORAGE_PUBLIC_URL)
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from voicestudio.core.config import Settings
from voicestudio.core.db import SessionLocal, bootstrap
from voicestudio.core.library import UNSET, AudioLibraryService, CategoryService, LibraryError, UserService
from voicestudio.core.models import AudioFile, Category, User
from voicestudio.core.prompt import build_prompt_instructions
from voicestudio.core.storage import LocalStorage, StorageError
from voicestudio.core.text import SanitizationEmptyResult, sanitize_for_tts, sanitize_prompt, validate_text_length
from voicestudio.core.tts import CONTENT_TYPES, DEFAULT_VOICE, SpeechClient, SpeechProviderError, Voice, response_format_for

log = logging.getLogger("voicestudio.api")

# The length bound may append "..." past its limit; keep the provider's ceiling hard.
ELLIPSIS_OVERRUN = 3


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input_script: str = Field(alias="inputScript", min_length=1)
    voice: Voice = DEFAULT_VOICE
    custom_instructions: Optional[str] = Field(default=None, alias="customInstructions")
    voice_affect: Optional[str] = Field(default=None, alias="voiceAffect")
    tone: Optional[str] = None
    emotion: Optional[str] = None
    pacing: Optional[str] = None
    pronunciation: Optional[str] = None
    pauses: Optional[str] = None
    personality: Optional[str] = None
    delivery: Optional[str] = None


class UpdateAudioRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1)
    category_id: Optional[str] = Field(default=None, alias="categoryId")

    @field_validator("name")
    @classmethod
    def _name_not_null(cls, v: Optional[str]) -> str:
        # omitted keeps the current name; an explicit null is an error
        if v is None:
            raise ValueError("name cannot be null")
        return v


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def reply(message: str, status: int, data: Any = None, error: str | None = None) -> JSONResponse:
    body: dict[str, Any] = {"message": message, "status": status, "success": status < 400}
    if data is not None:
        body["data"] = data
    if error is not None:
        body["error"] = error
    return JSONResponse(body, status_code=status)


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() + "Z" if dt else None


def audio_json(r: AudioFile) -> dict:
    return {
        "id": r.id,
        "userId": r.user_id,
        "categoryId": r.category_id,
        "name": r.name,
        "fileUrl": r.file_url,
        "fileKey": r.file_key,
        "fileSize": r.file_size,
        "duration": str(r.duration) if r.duration is not None else None,
        "inputScript": r.input_script,
        "voice": r.voice,
        "promptInstructions": r.prompt_instructions,
        "createdAt": _iso(r.created_at),
        "updatedAt": _iso(r.updated_at),
    }


def category_json(c: Category) -> dict:
    return {
        "id": c.id,
        "userId": c.user_id,
        "name": c.name,
        "description": c.description,
        "createdAt": _iso(c.created_at),
        "updatedAt": _iso(c.updated_at),
    }


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]


def current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = request.headers.get("x-api-token") or request.query_params.get("token") or ""
    user = UserService(db).by_token(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized access")
    return user


def get_storage(request: Request) -> LocalStorage:
    return request.app.state.storage


def get_speech(request: Request) -> SpeechClient:
    return request.app.state.speech


def _admin_auth(settings: Settings, request: Request) -> None:
    token = request.headers.get("x-admin-token") or request.query_params.get("token") or ""
    expected = settings.ADMIN_TOKEN or ""
    if expected and token != expected:
        raise HTTPException(status_code=401, detail="Unauthorized")


def prepare_speech_text(settings: Settings, req: GenerateRequest) -> tuple[str, str]:
    """Sanitize and bound the script and voice directions for the provider.

    Raises SanitizationEmptyResult when the script has nothing speakable.
    """
    prompt = req.custom_instructions or build_prompt_instructions(
        voice_affect=req.voice_affect,
        tone=req.tone,
        emotion=req.emotion,
        pacing=req.pacing,
        pronunciation=req.pronunciation,
        pauses=req.pauses,
        personality=req.personality,
        delivery=req.delivery,
    )
    script = sanitize_for_tts(req.input_script)
    if not script:
        raise SanitizationEmptyResult()
    script = validate_text_length(script, settings.MAX_INPUT_LENGTH - ELLIPSIS_OVERRUN)
    instructions = validate_text_length(sanitize_prompt(prompt), settings.MAX_PROMPT_LENGTH - ELLIPSIS_OVERRUN)
    return script, instructions


def create_app(settings: Settings) -> FastAPI:
    # Ensure DB schema exists before the app starts handling requests.
    bootstrap()

    app = FastAPI(title="Voice Studio")
    app.state.settings = settings
    app.state.storage = LocalStorage(settings.storage_path, settings.STORAGE_PUBLIC_URL)
    app.state.speech = SpeechClient(settings)

    settings.storage_path.mkdir(parents=True, exist_ok=True)
    # An absolute URL means another host (CDN) serves the bucket.
    if settings.STORAGE_PUBLIC_URL.startswith("/"):
        app.mount(settings.STORAGE_PUBLIC_URL, StaticFiles(directory=str(settings.storage_path)), name="files")

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return reply(str(exc.detail), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return reply("Invalid request data", 400, error=json.dumps(jsonable_errors(exc)))

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        log.exception(f"[api] unhandled error on {request.method} {request.url.path}")
        return reply("Internal server error", 500, error=str(exc) or type(exc).__name__)

    api = APIRouter(prefix="/api/v1")

    # ---------- Generation ----------
    @api.post("/audio/generate")
    async def audio_generate(
        request: Request,
        body: GenerateRequest,
        user: User = Depends(current_user),
        speech: SpeechClient = Depends(get_speech),
    ):
        if len(body.input_script) > settings.MAX_SCRIPT_CHARS:
            return reply("Invalid request data", 400, error=f"inputScript exceeds {settings.MAX_SCRIPT_CHARS} characters")
        try:
            script, instructions = prepare_speech_text(settings, body)
        except SanitizationEmptyResult as e:
            return reply("Invalid request data", 400, error=str(e))

        fmt = response_format_for(request.headers.get("user-agent"))
        try:
            audio = await speech.synthesize(script, voice=body.voice, instructions=instructions, response_format=fmt)
        except SpeechProviderError as e:
            return reply("Failed to generate audio", 500, error=e.detail)

        now = datetime.utcnow()
        filename = f"audio-{body.voice}-{int(time.time() * 1000)}.{fmt}"
        params = {
            "inputScript": body.input_script,
            "voice": body.voice,
            "promptInstructions": instructions,
            "timestamp": now.isoformat() + "Z",
        }
        log.info(f"[generate] user={user.id} voice={body.voice} chars={len(script)} format={fmt}")
        return Response(
            content=audio,
            media_type=CONTENT_TYPES[fmt],
            headers={
                "Content-Disposition": f'inline; filename="{filename}"',
                "Cache-Control": "no-cache",
                "X-Audio-Params": json.dumps(params),
            },
        )

    # ---------- Library ----------
    @api.post("/audio/save")
    async def audio_save(
        audio: Optional[UploadFile] = File(None),
        name: str = Form(""),
        inputScript: str = Form(""),
        voice: str = Form(""),
        categoryId: str = Form(""),
        promptInstructions: str = Form(""),
        duration: str = Form(""),
        user: User = Depends(current_user),
        db: Session = Depends(get_db),
        storage: LocalStorage = Depends(get_storage),
    ):
        if audio is None or not name or not inputScript or not voice:
            return reply("Missing required fields", 400)

        data = await audio.read()
        svc = AudioLibraryService(db, storage)
        try:
            row = svc.save(
                user.id,
                name=name,
                data=data,
                input_script=inputScript,
                voice=voice,
                prompt_instructions=promptInstructions or None,
                category_id=categoryId or None,
                duration=duration or None,
            )
        except LibraryError as e:
            return reply("Invalid request data", 400, error=str(e))
        except StorageError as e:
            log.error(f"[save] upload failed: {e}")
            return reply("Failed to upload audio file", 500, error=str(e))
        return reply("Audio file saved successfully", 200, data=audio_json(row))

    @api.get("/audio")
    async def audio_list(
        user: User = Depends(current_user),
        db: Session = Depends(get_db),
        storage: LocalStorage = Depends(get_storage),
    ):
        rows = AudioLibraryService(db, storage).list(user.id)
        return reply("Audio files retrieved successfully", 200, data=[audio_json(r) for r in rows])

    @api.get("/audio/{audio_id}")
    async def audio_get(
        audio_id: str,
        user: User = Depends(current_user),
        db: Session = Depends(get_db),
        storage: LocalStorage = Depends(get_storage),
    ):
        row = AudioLibraryService(db, storage).get(user.id, audio_id)
        if row is None:
            return reply("Audio file not found", 404)
        return reply("Audio file retrieved successfully", 200, data=audio_json(row))

    @api.patch("/audio/{audio_id}")
    async def audio_update(
        audio_id: str,
        body: UpdateAudioRequest,
        user: User = Depends(current_user),
        db: Session = Depends(get_db),
        storage: LocalStorage = Depends(get_storage),
    ):
        svc = AudioLibraryService(db, storage)
        try:
            row = svc.update(
                user.id,
                audio_id,
                name=body.name if "name" in body.model_fields_set else UNSET,
                category_id=body.category_id if "category_id" in body.model_fields_set else UNSET,
            )
        except LibraryError as e:
            return reply("Invalid request data", 400, error=str(e))
        if row is None:
            return reply("Audio file not found", 404)
        return reply("Audio file updated successfully", 200, data=audio_json(row))

    @api.delete("/audio/{audio_id}")
    async def audio_delete(
        audio_id: str,
        user: User = Depends(current_user),
        db: Session = Depends(get_db),
        storage: LocalStorage = Depends(get_storage),
    ):
        if not AudioLibraryService(db, storage).delete(user.id, audio_id):
            return reply("Audio file not found", 404)
        return reply("Audio file deleted successfully", 200)

    # ---------- Categories ----------
    @api.get("/categories")
    async def categories_list(user: User = Depends(current_user), db: Session = Depends(get_db)):
        rows = CategoryService(db).list(user.id)
        return reply("Categories retrieved successfully", 200, data=[category_json(c) for c in rows])

    @api.post("/categories")
    async def categories_create(
        name: str = Form(...),
        description: str = Form(""),
        user: User = Depends(current_user),
        db: Session = Depends(get_db),
    ):
        if not name.strip():
            return reply("Missing required fields", 400)
        c = CategoryService(db).create(user.id, name, description)
        return reply("Category created successfully", 200, data=category_json(c))

    # ---------- Users ----------
    admin = APIRouter(prefix="/admin")

    @admin.post("/api/users/create")
    async def api_users_create(
        request: Request,
        name: str = Form(...),
        email: str = Form(...),
        db: Session = Depends(get_db),
    ):
        _admin_auth(settings, request)
        try:
            u = UserService(db).create(name, email)
        except LibraryError as e:
            return reply("User already exists", 409, error=str(e))
        return reply("User created", 200, data={"id": u.id, "name": u.name, "email": u.email, "token": u.api_token})

    @app.get("/")
    async def root():
        return {"ok": True, "service": "voicestudio"}

    app.include_router(api)
    app.include_router(admin)
    return app
