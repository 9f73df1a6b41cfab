"""
Buddy AI Configuration Settings

Gemini drives the tool-calling conversation turn; the single-shot
generation flows (exercises, topic ranking, code analysis, follow-ups)
run on a Hugging Face instruct model.
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Configuration for the Buddy AI turn engine."""

    APP_NAME: str = "Buddy AI"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    LOG_DIR: Optional[str] = None

    # Conversation model (tool calling, safety filters)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.0-flash"
    MODEL_TIMEOUT_SECONDS: float = 60.0
    MAX_TOOL_ROUNDS: int = 5
    MAX_HISTORY_MESSAGES: int = 10

    # Structured generation model (Hugging Face Inference API)
    HUGGINGFACE_API_KEY: Optional[str] = None
    LLM_MODEL: str = "mistralai/Mistral-7B-Instruct-v0.2"
    LLM_MAX_NEW_TOKENS: int = 1024
    LLM_TEMPERATURE: float = 0.4
    FOLLOWUP_TIMEOUT_SECONDS: float = 8.0

    # Web search (Google Custom Search)
    GOOGLE_API_KEY: Optional[str] = None
    GOOGLE_SEARCH_ENGINE_ID: Optional[str] = None
    WEB_SEARCH_MAX_RESULTS: int = 5
    PAGE_FETCH_TIMEOUT_SECONDS: float = 10.0
    EXTRACTED_TEXT_MAX_CHARS: int = 3000
    INDEX_MIN_CHARS: int = 100

    # Vision / image generation
    GOOGLE_VISION_API_KEY: Optional[str] = None
    IMAGE_MODEL: str = "imagen-3.0-generate-002"

    # Semantic web index (Qdrant)
    QDRANT_HOST: str = "localhost"
    QDRANT_PORT: int = 6333
    QDRANT_COLLECTION: str = "buddy_web_content"
    EMBEDDING_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
    EMBEDDING_DIMENSION: int = 384
    RELATED_CONTENT_MIN_SIMILARITY: float = 0.4
    RELATED_CONTENT_TIMEOUT_SECONDS: float = 5.0

    # Document store (MongoDB)
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB: str = "buddy_ai"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
