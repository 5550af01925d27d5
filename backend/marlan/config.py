"""Configuration management"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load backend/.env explicitly so the app finds it regardless of the working directory
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Config:
    """Application configuration"""

    # LLM provider: "openai" or "deepseek"
    LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai").lower()
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
    DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY")
    DEEPSEEK_MODEL = os.getenv("DEEPSEEK_MODEL", "deepseek-chat")
    LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "4096"))

    # Search providers
    PERPLEXITY_API_KEY = os.getenv("PERPLEXITY_API_KEY")
    PERPLEXITY_MODEL = os.getenv("PERPLEXITY_MODEL", "sonar")
    PERPLEXITY_API_URL = os.getenv("PERPLEXITY_API_URL", "https://api.perplexity.ai/chat/completions")
    SERPAPI_API_KEY = os.getenv("SERPAPI_API_KEY")

    # Supabase auth
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")

    # Database
    DATABASE_PATH = os.getenv("DATABASE_PATH", str(Path(__file__).parent.parent / "data" / "marlan.db"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR = os.getenv("LOG_DIR", str(Path(__file__).parent.parent / "logs"))
    LOG_JSON = _env_bool("LOG_JSON", "true")

    # HTTP
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    # Embeddable widget
    WIDGET_USER_ID = os.getenv("WIDGET_USER_ID", "widget-anonymous")
    WIDGET_RATE_LIMIT = int(os.getenv("WIDGET_RATE_LIMIT", "10"))
    WIDGET_RATE_WINDOW = int(os.getenv("WIDGET_RATE_WINDOW", "60"))

    # Langfuse tracing (optional)
    LANGFUSE_PUBLIC_KEY = os.getenv("LANGFUSE_PUBLIC_KEY")
    LANGFUSE_SECRET_KEY = os.getenv("LANGFUSE_SECRET_KEY")
    LANGFUSE_HOST = os.getenv("LANGFUSE_HOST") or os.getenv("LANGFUSE_BASE_URL", "https://cloud.langfuse.com")

    @classmethod
    def summary(cls) -> dict:
        """Key settings for the startup log, without secrets"""
        return {
            "llm_provider": cls.LLM_PROVIDER,
            "openai_model": cls.OPENAI_MODEL,
            "deepseek_model": cls.DEEPSEEK_MODEL,
            "perplexity_configured": bool(cls.PERPLEXITY_API_KEY),
            "serpapi_configured": bool(cls.SERPAPI_API_KEY),
            "supabase_configured": bool(cls.SUPABASE_URL and cls.SUPABASE_ANON_KEY),
            "database_path": cls.DATABASE_PATH,
        }


config = Config()
