"""Load settings.yaml into typed dataclasses. Validates the question catalog at startup."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from intake.models import Question

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class PromptsConfig:
    extraction: str
    summary: str


@dataclass
class DefaultsConfig:
    oracle: str
    summarizer: str
    store_dir: Path
    history_window: int = 6
    summary_window: int = 10


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8787
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class AdminConfig:
    password_env: str = "INTAKE_ADMIN_PASSWORD"
    secret_env: str = "INTAKE_TOKEN_SECRET"
    token_ttl_sec: int = 3600


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    questions: list[Question]
    server: ServerConfig = field(default_factory=ServerConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)


def _load_questions(raw_questions: list) -> list[Question]:
    """Build the catalog and enforce non-empty, unique ids and keys."""
    if not raw_questions:
        raise ValueError("Question catalog is empty")

    questions: list[Question] = []
    seen_ids: set[str] = set()
    seen_keys: set[str] = set()
    for item in raw_questions:
        question = Question(id=str(item["id"]), key=str(item["key"]), text=str(item["text"]).strip())
        if not question.id or not question.key or not question.text:
            raise ValueError(f"Question entries need id, key and text: {item!r}")
        if question.id in seen_ids:
            raise ValueError(f"Duplicate question id: {question.id}")
        if question.key in seen_keys:
            raise ValueError(f"Duplicate question key: {question.key}")
        seen_ids.add(question.id)
        seen_keys.add(question.key)
        questions.append(question)
    return questions


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError if the
    question catalog is invalid. API keys are read by the CLI when it
    builds a provider, not here.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        oracle=str(defaults_raw["oracle"]),
        summarizer=str(defaults_raw.get("summarizer", defaults_raw["oracle"])),
        store_dir=Path(defaults_raw["store_dir"]),
        history_window=int(defaults_raw.get("history_window", 6)),
        summary_window=int(defaults_raw.get("summary_window", 10)),
    )

    server_raw = raw.get("server", {})
    server = ServerConfig(
        host=str(server_raw.get("host", "127.0.0.1")),
        port=int(server_raw.get("port", 8787)),
        cors_origins=list(server_raw.get("cors_origins", ["*"])),
    )

    admin_raw = raw.get("admin", {})
    admin = AdminConfig(
        password_env=str(admin_raw.get("password_env", "INTAKE_ADMIN_PASSWORD")),
        secret_env=str(admin_raw.get("secret_env", "INTAKE_TOKEN_SECRET")),
        token_ttl_sec=int(admin_raw.get("token_ttl_sec", 3600)),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        extraction=prompts_raw["extraction"],
        summary=prompts_raw["summary"],
    )

    questions = _load_questions(raw.get("questions") or [])

    models: dict[str, ModelConfig] = {}
    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

    logger.debug("Loaded %d questions and %d models from %s", len(questions), len(models), settings_path)
    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        questions=questions,
        server=server,
        admin=admin,
    )
