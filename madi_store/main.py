import logging
from contextlib import asynccontextmanager
from typing import Optional, Union

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from google import genai
from google.genai import types as genai_types
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import AppSettings, settings
from .rate_limit import FixedWindowRateLimiter, RateLimitMiddleware
from .schema import (
    AITaskPayload, AudioTaskResponse, ChatPayload, ChatResponse, ErrorResponse, TextTaskResponse
)
from .utils import encode_audio

logger = logging.getLogger(__name__)

# request-body validation failures are reported with the route's own message
VALIDATION_MESSAGES = {
    "/api/chat": "Invalid input data",
    "/api/ai": "Task and product are required",
}

# --- Application Lifecycle (Lifespan Events) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.gemini_client is None:
        logger.info("Initializing Gemini client...")
        try:
            app.state.gemini_client = genai.Client(api_key=app.state.settings.gemini_api_key)
        except Exception as e:
            logger.critical("Failed to initialize Gemini client: %s", e)
            raise RuntimeError(f"Failed to initialize Gemini client: {e}") from e
        logger.info("Successfully initialized Gemini client.")
    yield
    logger.info("Application shutdown complete.")

# --- Dependencies ---
def get_gemini_client(request: Request) -> genai.Client:
    if getattr(request.app.state, 'gemini_client', None) is None:
        logger.error("Gemini client not available in app.state.")
        raise HTTPException(status_code=503, detail="Gemini service is temporarily unavailable.")
    return request.app.state.gemini_client

def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings

# --- Provider calls ---
async def generate_description(client: genai.Client, s: AppSettings, product) -> str:
    response = await client.aio.models.generate_content(
        model=s.text_generation_model_name,
        contents=s.description_prompt_template.format(name=product.name, variant=product.variant or "Standard"),
        config=genai_types.GenerateContentConfig(system_instruction=s.description_system_instruction),
    )
    return response.text

async def generate_analysis(client: genai.Client, s: AppSettings, product) -> str:
    response = await client.aio.models.generate_content(
        model=s.text_generation_model_name,
        contents=s.analysis_prompt_template.format(name=product.name),
        config=genai_types.GenerateContentConfig(
            tools=[genai_types.Tool(google_search=genai_types.GoogleSearch())],
            system_instruction=s.analysis_system_instruction,
        ),
    )
    return response.text

async def synthesize_speech(client: genai.Client, s: AppSettings, text: str) -> str:
    """Returns base64 PCM (16-bit mono, 24 kHz) spoken by the configured voice."""
    response = await client.aio.models.generate_content(
        model=s.tts_model_name,
        contents=s.tts_prompt_template.format(text=text),
        config=genai_types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=genai_types.SpeechConfig(
                voice_config=genai_types.VoiceConfig(
                    prebuilt_voice_config=genai_types.PrebuiltVoiceConfig(voice_name=s.tts_voice_name)
                )
            ),
        ),
    )
    try:
        inline_data = response.candidates[0].content.parts[0].inline_data
    except (AttributeError, IndexError, TypeError):
        inline_data = None
    audio_data = encode_audio(inline_data.data if inline_data else None)
    if not audio_data:
        raise ValueError("Invalid TTS API response format.")
    return audio_data

# --- API Endpoints ---
ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 429, 500, 503)}

router = APIRouter(prefix="/api", responses=ERROR_RESPONSES)

@router.post("/chat", response_model=ChatResponse)
async def chat(
        payload: ChatPayload,
        gemini_client: genai.Client = Depends(get_gemini_client),
        s: AppSettings = Depends(get_settings)
):
    """Answers a shopper's question, grounded by the client's system instruction."""
    logger.debug("Chat request: '%s...'", payload.userInput[:50])
    try:
        response = await gemini_client.aio.models.generate_content(
            model=s.chat_model_name,
            contents=payload.userInput,
            config=genai_types.GenerateContentConfig(system_instruction=payload.systemInstruction),
        )
        if not response.text:
            raise ValueError("Empty response from model")
        return ChatResponse(aiResponse=response.text)
    except Exception as e:
        logger.exception("Error in /api/chat with Gemini API (%s): %s", s.chat_model_name, e)
        raise HTTPException(status_code=500, detail="Failed to get response from AI")

@router.post("/ai", response_model=Union[TextTaskResponse, AudioTaskResponse])
async def ai_task(
        payload: AITaskPayload,
        gemini_client: genai.Client = Depends(get_gemini_client),
        s: AppSettings = Depends(get_settings)
):
    """Runs one product task: "desc", "analysis" or "audio"."""
    task = payload.task
    if task == "audio" and not payload.textToSpeak:
        raise HTTPException(status_code=400, detail="textToSpeak is required for audio task")
    if task not in ("desc", "analysis", "audio"):
        raise HTTPException(status_code=400, detail="Invalid task type")

    logger.info("Running %s task for product %s", task, payload.product.id)
    try:
        if task == "desc":
            text = await generate_description(gemini_client, s, payload.product)
        elif task == "analysis":
            text = await generate_analysis(gemini_client, s, payload.product)
        else:
            return AudioTaskResponse(audioData=await synthesize_speech(gemini_client, s, payload.textToSpeak))
        if not text:
            raise ValueError("Empty response from model")
        return TextTaskResponse(generatedContent=text)
    except Exception as e:
        logger.exception("Error in /api/ai for task %s: %s", task, e)
        raise HTTPException(status_code=500, detail="Failed to process AI task")

# --- Error shaping ---
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = VALIDATION_MESSAGES.get(request.url.path, "Invalid request body")
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse({"error": message}, status_code=400)

def mount_client(app: FastAPI, s: AppSettings) -> None:
    """Serves the built storefront, falling back to index.html for client-side routes."""
    dist_path = s.client_dist_path.resolve()

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_client(full_path: str):
        candidate = (dist_path / full_path).resolve()
        if full_path and candidate.is_file() and dist_path in candidate.parents:
            return FileResponse(candidate)
        return FileResponse(dist_path / "index.html")

def create_app(app_settings: AppSettings = settings, gemini_client: Optional[genai.Client] = None) -> FastAPI:
    app = FastAPI(
        title="MADI Store AI Proxy",
        description="Validates storefront requests and forwards them to Gemini.",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = app_settings
    app.state.gemini_client = gemini_client
    app.state.rate_limiter = FixedWindowRateLimiter(
        max_requests=app_settings.rate_limit_max_requests,
        window_seconds=app_settings.rate_limit_window_seconds,
    )

    app.add_middleware(
        RateLimitMiddleware,
        limiter=app.state.rate_limiter,
        path_prefix="/api/",
        message=app_settings.rate_limit_message,
    )
    # --- CORS Configuration ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(router)

    if app_settings.is_production:
        mount_client(app, app_settings)
    return app

app = create_app()

def run() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    logger.info("Server is starting on http://localhost:%s", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)

if __name__ == "__main__":
    run()
