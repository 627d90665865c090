"""FastAPI application and routes."""

import logging
import random
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

import httpx
from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from companion_engine.config import CharacterConfig, ConfigLoader, SystemConfig
from companion_engine.db import SessionLocal, get_db, init_db
from companion_engine.llm import create_text_providers
from companion_engine.models import MessageSender
from companion_engine.repositories import CharacterRepository, ChatRepository
from companion_engine.services.audio_storage import AudioStorageService
from companion_engine.services.chat_orchestrator import ChatOrchestrator, ChatResponseEnvelope
from companion_engine.services.image.provider_factory import create_image_providers
from companion_engine.services.image_generation_orchestrator import ImageGenerationOrchestrator
from companion_engine.services.image_prompt_service import PortraitRequest
from companion_engine.services.love_meter import maybe_increment_love_meter
from companion_engine.services.tts import ElevenLabsTTSProvider, SpeechErrorCategory, SpeechSynthesisError, TTSService
from companion_engine.utils.ttl_cache import BoundedTTLCache

logger = logging.getLogger(__name__)


# Global state
app_state = {
    "system_config": None,
    "chat_orchestrator": None,
    "image_orchestrator": None,
    "tts_service": None,
    "http_client": None,
    "rng": random.Random(),
}


def build_services(system_config: SystemConfig, http_client: httpx.AsyncClient, audio_folder: Path) -> dict:
    """Construct providers, caches and orchestrators from configuration."""
    text_config = system_config.text_generation
    cache_config = system_config.cache

    chat_orchestrator = ChatOrchestrator(
        providers=create_text_providers(text_config, client=http_client),
        response_cache=BoundedTTLCache(
            cache_config.response_ttl_seconds,
            max_entries=cache_config.response_max_entries,
        ),
        cache_key_chars=cache_config.response_key_message_chars,
        detection_history_window=text_config.detection_history_window,
        local_fallback_id=text_config.local_fallback_id,
    )

    image_orchestrator = ImageGenerationOrchestrator(
        config=system_config.image_generation,
        providers=create_image_providers(system_config.image_generation, client=http_client),
    )

    speech_config = system_config.speech
    storage = AudioStorageService(audio_folder)
    removed = storage.cleanup_stale_audio()
    if removed:
        logger.info(f"Removed {removed} stale audio file(s)")
    tts_service = TTSService(
        config=speech_config,
        provider=ElevenLabsTTSProvider(speech_config, speech_config.resolve_api_key(), client=http_client),
        storage=storage,
    )

    return {
        "chat_orchestrator": chat_orchestrator,
        "image_orchestrator": image_orchestrator,
        "tts_service": tts_service,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    logger.info("Starting Companion Engine...")

    try:
        init_db()
        logger.info("✓ Database initialized")

        loader = ConfigLoader()
        system_config = loader.load_system_config()
        seed_characters = loader.load_all_characters()

        db = SessionLocal()
        try:
            inserted = CharacterRepository(db).seed(list(seed_characters.values()))
            logger.info(f"✓ Seeded {inserted} new character(s)")
        finally:
            db.close()

        http_client = httpx.AsyncClient(timeout=httpx.Timeout(120.0))
        app_state["system_config"] = system_config
        app_state["http_client"] = http_client
        app_state.update(build_services(system_config, http_client, Path("data/audio")))

        configured = [p.provider_id for p in app_state["chat_orchestrator"].providers if p.is_configured()]
        logger.info(f"✓ Text providers configured: {configured or 'none (local fallback only)'}")
    except Exception as e:
        logger.error(f"Startup failed: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down Companion Engine...")
    if app_state["tts_service"]:
        app_state["tts_service"].clear_caches()
    if app_state["http_client"]:
        await app_state["http_client"].aclose()


# Create FastAPI app
app = FastAPI(
    title="Companion Engine",
    description="AI companion characters with provider fallback orchestration",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    characters_loaded: int
    text_providers_configured: list[str]
    speech_configured: bool


class ConversationTurnModel(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class AIChatRequest(BaseModel):
    """Chat request model."""
    message: str = Field(min_length=1)
    character_id: str
    chat_history: list[ConversationTurnModel] = Field(default_factory=list)
    character_traits: list[str] = Field(default_factory=list)
    character_context: Optional[dict] = None


class ImageGenerationRequest(BaseModel):
    """Portrait request model."""
    name: str
    gender: str = "nonbinary"
    height: str = "average"
    build: str = "slim"
    eye_color: str = "brown"
    hair_color: str = "brown"
    skin_tone: str = "fair"
    personality_traits: list[str] = Field(default_factory=list)
    art_style: str = "anime"
    character_id: Optional[str] = None  # Store the result on this character


class ImageGenerationResponse(BaseModel):
    success: bool
    image_url: str
    fallback: bool
    model_used: Optional[str] = None
    message: Optional[str] = None
    error_details: Optional[str] = None
    prompt_used: Optional[str] = None
    fallback_reason: Optional[str] = None
    content_policy_flagged: bool = False


class SpeechRequest(BaseModel):
    voice_id: str
    text: str = ""


class SpeechResponse(BaseModel):
    success: bool
    audio_data: str
    content_type: str
    audio_size_bytes: int
    model_used: str
    fallback: bool = False


class VoiceListResponse(BaseModel):
    success: bool = True
    voices: list[dict]
    fallback: bool
    message: Optional[str] = None


class ChatCreate(BaseModel):
    character_id: str


class ChatResponse(BaseModel):
    id: str
    character_id: str
    love_meter: int
    created_at: datetime


class MessageCreate(BaseModel):
    content: str = Field(min_length=1)


class MessageResponse(BaseModel):
    id: str
    chat_id: str
    sender: str
    content: str
    metadata: Optional[dict] = None
    created_at: datetime


class ChatTurnResponse(BaseModel):
    user_message: MessageResponse
    character_message: MessageResponse
    love_meter: int
    envelope: ChatResponseEnvelope


def _service(name: str):
    service = app_state.get(name)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return service


def _chat_response(chat) -> ChatResponse:
    return ChatResponse(
        id=chat.id,
        character_id=chat.character_id,
        love_meter=chat.love_meter,
        created_at=chat.created_at,
    )


def _message_response(message) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        chat_id=message.chat_id,
        sender=message.sender.value,
        content=message.content,
        metadata=message.meta_data,
        created_at=message.created_at,
    )


def _character_from_context(request: AIChatRequest) -> Optional[CharacterConfig]:
    context = request.character_context
    if not context:
        return None
    try:
        return CharacterConfig(
            id=request.character_id,
            name=context.get("name") or "Companion",
            gender=context.get("gender") or "nonbinary",
            personality_traits=request.character_traits or context.get("personality_traits") or [],
            backstory=context.get("backstory"),
            meet_cute=context.get("meet_cute"),
            art_style=context.get("art_style") or "anime",
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid character_context: {e}")


def _speech_failure(error: SpeechSynthesisError) -> JSONResponse:
    return JSONResponse(
        status_code=error.http_status,
        content={
            "success": False,
            "error": error.user_message,
            "category": error.category.value,
            "fallback": True,
            "debug_info": error.debug_info,
        },
    )


# Routes

@app.get("/health", response_model=HealthResponse)
async def health_check(db: Session = Depends(get_db)):
    """Check system health."""
    chat_orchestrator = app_state["chat_orchestrator"]
    tts_service = app_state["tts_service"]
    return HealthResponse(
        status="ok",
        characters_loaded=len(CharacterRepository(db).list_all()),
        text_providers_configured=[
            p.provider_id for p in chat_orchestrator.providers if p.is_configured()
        ] if chat_orchestrator else [],
        speech_configured=tts_service.is_configured() if tts_service else False,
    )


@app.post("/ai-chat", response_model=ChatResponseEnvelope)
async def ai_chat(request: AIChatRequest, db: Session = Depends(get_db)):
    """Generate a character reply through the provider fallback chain."""
    orchestrator = _service("chat_orchestrator")

    stored = CharacterRepository(db).get_by_id(request.character_id)
    if stored:
        character = CharacterRepository.to_config(stored)
    else:
        character = _character_from_context(request)
    if character is None:
        raise HTTPException(status_code=404, detail=f"Character '{request.character_id}' not found")

    return await orchestrator.generate(request.message, character, request.chat_history)


@app.post("/ai-image-generation", response_model=ImageGenerationResponse)
async def ai_image_generation(request: ImageGenerationRequest, db: Session = Depends(get_db)):
    """Generate a character portrait, falling back to a curated image."""
    orchestrator = _service("image_orchestrator")

    portrait = PortraitRequest(
        name=request.name,
        gender=request.gender,
        height=request.height,
        build=request.build,
        eye_color=request.eye_color,
        hair_color=request.hair_color,
        skin_tone=request.skin_tone,
        personality_traits=[t.strip().lower() for t in request.personality_traits if t.strip()],
        art_style=request.art_style,
    )
    outcome = await orchestrator.generate_portrait(portrait)

    if request.character_id:
        CharacterRepository(db).update_image(request.character_id, outcome.image_url)

    data = asdict(outcome)
    data.pop("attempts", None)
    return ImageGenerationResponse(**data)


async def _speech(voice_id: str, text: Optional[str], preview: bool):
    tts_service = _service("tts_service")
    try:
        if preview:
            handle = await tts_service.preview(voice_id, text or None)
        else:
            handle = await tts_service.synthesize(voice_id, text)
        audio_data = handle.to_base64()
    except SpeechSynthesisError as e:
        logger.warning(f"[TTS] Speech failed ({e.category.value}): {e.debug_info or e.user_message}")
        return _speech_failure(e)
    except OSError as e:
        logger.error(f"[TTS] Could not read generated audio: {e}")
        return _speech_failure(SpeechSynthesisError(SpeechErrorCategory.UNEXPECTED, debug_info=str(e)))

    return SpeechResponse(
        success=True,
        audio_data=audio_data,
        content_type=handle.content_type,
        audio_size_bytes=handle.size_bytes,
        model_used=tts_service.config.model_id,
    )


@app.post("/ai-service/generate-speech", response_model=SpeechResponse)
async def generate_speech(request: SpeechRequest):
    """Synthesize speech for a message."""
    return await _speech(request.voice_id, request.text, preview=False)


@app.post("/ai-service/generate-voice-preview", response_model=SpeechResponse)
async def generate_voice_preview(request: SpeechRequest):
    """Synthesize a short voice sample."""
    return await _speech(request.voice_id, request.text, preview=True)


@app.get("/voices", response_model=VoiceListResponse)
async def list_voices():
    """Voice catalog (fallback voices when the provider is unavailable)."""
    catalog = await _service("tts_service").list_voices()
    return VoiceListResponse(voices=catalog.voices, fallback=catalog.fallback, message=catalog.message)


@app.post("/characters", status_code=201)
async def create_character(payload: dict = Body(...), db: Session = Depends(get_db)):
    """Create a character; invalid fields are reported one per line."""
    is_valid, errors = ConfigLoader.validate_character(payload)
    if not is_valid:
        raise HTTPException(status_code=422, detail=errors)
    character = CharacterConfig(**payload)

    repo = CharacterRepository(db)
    if repo.get_by_id(character.id):
        raise HTTPException(status_code=409, detail=f"Character '{character.id}' already exists")
    created = repo.create(character)
    logger.info(f"Created character {created.id}")
    return CharacterRepository.to_config(created).model_dump(mode="json")


@app.get("/characters/{character_id}")
async def get_character(character_id: str, db: Session = Depends(get_db)):
    """Get a character by ID."""
    character = CharacterRepository(db).get_by_id(character_id)
    if not character:
        raise HTTPException(status_code=404, detail=f"Character '{character_id}' not found")
    return CharacterRepository.to_config(character).model_dump(mode="json")


@app.post("/chats", response_model=ChatResponse, status_code=201)
async def create_chat(request: ChatCreate, db: Session = Depends(get_db)):
    """Start a chat with a character."""
    if not CharacterRepository(db).get_by_id(request.character_id):
        raise HTTPException(status_code=404, detail=f"Character '{request.character_id}' not found")
    return _chat_response(ChatRepository(db).create(request.character_id))


@app.get("/chats/{chat_id}/messages", response_model=list[MessageResponse])
async def get_chat_messages(chat_id: str, db: Session = Depends(get_db)):
    """List a chat's messages in order."""
    repo = ChatRepository(db)
    if not repo.get_by_id(chat_id):
        raise HTTPException(status_code=404, detail="Chat not found")
    return [_message_response(m) for m in repo.get_messages(chat_id)]


@app.post("/chats/{chat_id}/messages", response_model=ChatTurnResponse)
async def send_chat_message(chat_id: str, request: MessageCreate, db: Session = Depends(get_db)):
    """
    Run one persisted chat turn.

    Stores the user message, generates the reply from the chat's recent
    history, stores the reply with its telemetry, then applies the love
    meter rule.
    """
    orchestrator = _service("chat_orchestrator")
    system_config = app_state["system_config"] or SystemConfig()

    chat_repo = ChatRepository(db)
    chat = chat_repo.get_by_id(chat_id)
    if not chat:
        raise HTTPException(status_code=404, detail="Chat not found")

    stored = CharacterRepository(db).get_by_id(chat.character_id)
    if not stored:
        raise HTTPException(status_code=404, detail=f"Character '{chat.character_id}' not found")
    character = CharacterRepository.to_config(stored)

    history = ChatRepository.to_turns(
        chat_repo.get_messages(chat_id, limit=system_config.chat.history_limit)
    )
    user_message = chat_repo.add_message(chat_id, MessageSender.USER, request.content)

    envelope = await orchestrator.generate(request.content, character, history)
    character_message = chat_repo.add_message(
        chat_id,
        MessageSender.CHARACTER,
        envelope.response,
        metadata=envelope.model_dump(mode="json", exclude={"response"}),
    )

    love_meter = maybe_increment_love_meter(
        chat.love_meter,
        app_state["rng"],
        chance=system_config.chat.love_meter_chance,
        cap=system_config.chat.love_meter_max,
    )
    if love_meter != chat.love_meter:
        chat_repo.update_love_meter(chat_id, love_meter)
        logger.debug(f"[CHAT] Love meter for chat {chat_id} now {love_meter}")

    return ChatTurnResponse(
        user_message=_message_response(user_message),
        character_message=_message_response(character_message),
        love_meter=love_meter,
        envelope=envelope,
    )
