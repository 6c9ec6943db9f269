"""Click CLI: serve the HTTP API, run a terminal interview, list stored records."""

import asyncio
import logging
import os
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.logging import RichHandler

from config.config_loader import AppConfig, load_config
from intake.auth import AdminAuth
from intake.models import AnswerState, ChatMessage, ExtractionRequest, SessionRecord
from intake.oracle import LLMOracle, Oracle
from intake.output import console, print_answers, print_assistant, print_records, print_summary
from intake.providers.anthropic import AnthropicProvider
from intake.providers.base import AIProvider, OracleUnavailable
from intake.providers.gemini import GeminiProvider
from intake.providers.openai_provider import OpenAIProvider
from intake.store import SessionStore
from intake.summary import parse_summary_tags, summarize
from intake.turn import process_turn

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
}

_QUIT_WORDS = {"quit", "exit", ":q"}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_provider(config: AppConfig, name: str) -> AIProvider:
    """Instantiate the named provider with its API key from the environment."""
    if name not in config.models:
        raise click.ClickException(f"Provider '{name}' is not configured in settings.yaml")
    model_cfg = config.models[name]
    if model_cfg.sdk not in PROVIDER_CLASSES:
        raise click.ClickException(f"Provider '{name}' uses unknown sdk '{model_cfg.sdk}'")
    api_key = os.environ.get(model_cfg.api_key_env, "")
    try:
        return PROVIDER_CLASSES[model_cfg.sdk](model_cfg, api_key)
    except OracleUnavailable as exc:
        raise click.ClickException(f"{exc}. Check API keys in .env.") from exc


def _build_oracle_and_summarizer(config: AppConfig) -> tuple[LLMOracle, AIProvider]:
    """The summarizer reuses the oracle's provider when both names match."""
    oracle_provider = _build_provider(config, config.defaults.oracle)
    summarizer = (
        oracle_provider
        if config.defaults.summarizer == config.defaults.oracle
        else _build_provider(config, config.defaults.summarizer)
    )
    return LLMOracle(oracle_provider, config.prompts, config.defaults.history_window), summarizer


def _build_admin_auth(config: AppConfig) -> AdminAuth | None:
    password = os.environ.get(config.admin.password_env, "").strip()
    secret = os.environ.get(config.admin.secret_env, "").strip()
    if not password or not secret:
        logger.warning(
            "Admin routes disabled: set %s and %s to enable them",
            config.admin.password_env,
            config.admin.secret_env,
        )
        return None
    return AdminAuth(password=password, secret=secret, ttl_sec=config.admin.token_ttl_sec)


async def _run_chat(
    config: AppConfig,
    oracle: Oracle,
    summarizer: AIProvider,
    store: SessionStore,
    session_id: str,
) -> Path | None:
    """Interview loop on the terminal. Returns the stored record path, if any."""
    questions = config.questions
    answers: AnswerState = {}
    history: list[ChatMessage] = []
    complete = False

    opening = f"Hi! Let's talk about your AI idea. {questions[0].text}"
    print_assistant(opening)
    history.append(ChatMessage(role="assistant", text=opening))

    while not complete:
        message = click.prompt("You", default="", show_default=False)
        if message.strip().lower() in _QUIT_WORDS:
            break

        request = ExtractionRequest(questions=questions, answers=answers, history=history, message=message)
        try:
            result = await process_turn(request, oracle)
        except OracleUnavailable as exc:
            console.print(f"[bold red]Model unavailable:[/bold red] {exc}. Try that again.")
            continue

        answers = result.answers
        history.append(ChatMessage(role="user", text=message))
        history.append(ChatMessage(role="assistant", text=result.extraction.response))
        complete = result.extraction.all_answered

        print_assistant(result.extraction.response)
        print_answers(answers, questions, result.extraction.current_focus)

    if not complete and not click.confirm("Interview incomplete. Save it anyway?", default=False):
        return None

    try:
        summary = await summarize(answers, history, summarizer, config.prompts, config.defaults.summary_window)
    except OracleUnavailable as exc:
        console.print(f"[bold red]Summary failed:[/bold red] {exc}")
        return None

    tags = parse_summary_tags(summary)
    print_summary(summary, tags)
    return store.save(
        SessionRecord(
            session_id=session_id,
            created_at=datetime.now(timezone.utc),
            answers=answers,
            summary=summary,
            tags=tags,
        )
    )


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Path to settings.yaml (default: bundled config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """AI Intake -- interview people about proposed AI projects.

    \b
    Examples:
      intake serve --port 8787
      intake chat
      intake records
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config(Path(config_path)) if config_path else load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    ctx.obj = config


@main.command()
@click.option("--host", default=None, help="Bind address (default: from config)")
@click.option("--port", default=None, type=int, help="Port (default: from config)")
@click.pass_obj
def serve(config: AppConfig, host: str | None, port: int | None) -> None:
    """Run the HTTP API."""
    import uvicorn

    from intake.api import create_app

    oracle, summarizer = _build_oracle_and_summarizer(config)
    app = create_app(
        config=config,
        oracle=oracle,
        summarizer=summarizer,
        store=SessionStore(config.defaults.store_dir),
        auth=_build_admin_auth(config),
    )
    uvicorn.run(app, host=host or config.server.host, port=port or config.server.port)


@main.command()
@click.option("--session-id", default=None, help="Session identifier (default: random UUID)")
@click.pass_obj
def chat(config: AppConfig, session_id: str | None) -> None:
    """Run an interview in the terminal. Type 'quit' to stop early."""
    oracle, summarizer = _build_oracle_and_summarizer(config)
    store = SessionStore(config.defaults.store_dir)

    saved = asyncio.run(_run_chat(config, oracle, summarizer, store, session_id or str(uuid.uuid4())))
    if saved is not None:
        console.print(f"\n[dim]Saved to: {saved}[/dim]")


@main.command()
@click.pass_obj
def records(config: AppConfig) -> None:
    """List stored interview records."""
    print_records(SessionStore(config.defaults.store_dir).load_all())


if __name__ == "__main__":
    main()
