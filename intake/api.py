"""FastAPI app: interview turns, summaries, session submission, admin record access."""

import logging
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import Body, Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.config_loader import AppConfig
from intake.auth import AdminAuth, AuthError
from intake.models import SessionRecord, answers_to_dict
from intake.oracle import Oracle
from intake.providers.base import AIProvider, OracleUnavailable
from intake.store import SessionStore
from intake.summary import parse_summary_tags, summarize
from intake.turn import InvalidRequest, parse_answers, parse_history, parse_turn_request, process_turn

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _record_to_dict(record: SessionRecord) -> dict:
    return {
        "sessionId": record.session_id,
        "createdAt": record.created_at.isoformat(),
        "answers": answers_to_dict(record.answers),
        "summary": record.summary,
        "tags": record.tags,
    }


def _upstream_error(exc: OracleUnavailable) -> HTTPException:
    logger.error("Oracle unavailable: %s", exc)
    detail = f"Upstream model error: {exc}"
    if exc.status_code is not None:
        detail = f"Upstream model error ({exc.status_code}): {exc}"
    return HTTPException(status_code=502, detail=detail)


def create_app(
    config: AppConfig,
    oracle: Oracle,
    summarizer: AIProvider,
    store: SessionStore,
    auth: AdminAuth | None = None,
) -> FastAPI:
    """Build the HTTP app around already-constructed collaborators."""
    app = FastAPI(title="AI Intake", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    def require_admin(
        credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    ) -> None:
        if auth is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Admin access is not configured"
            )
        if credentials is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing authentication token",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not auth.verify(credentials.credentials):
            logger.warning("Rejected admin token")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
                headers={"WWW-Authenticate": "Bearer"},
            )

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/questions")
    async def questions() -> dict:
        return {"questions": [{"id": q.id, "key": q.key, "text": q.text} for q in config.questions]}

    @app.post("/chat")
    async def chat(payload: Any = Body(...)) -> dict:
        try:
            request = parse_turn_request(payload)
            result = await process_turn(request, oracle)
        except InvalidRequest as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except OracleUnavailable as exc:
            raise _upstream_error(exc) from exc
        return result.to_dict()

    async def _summarize_payload(payload: Any) -> tuple[str, dict]:
        if not isinstance(payload, dict):
            raise InvalidRequest("Request body must be a JSON object")
        answers = parse_answers(payload.get("answers"))
        history = parse_history(payload.get("chat"))
        summary = await summarize(
            answers, history, summarizer, config.prompts, config.defaults.summary_window
        )
        return summary, answers

    @app.post("/summarize")
    async def summarize_route(payload: Any = Body(...)) -> dict:
        try:
            summary, _ = await _summarize_payload(payload)
        except InvalidRequest as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except OracleUnavailable as exc:
            raise _upstream_error(exc) from exc
        return {"summary": summary}

    @app.post("/submit")
    async def submit(payload: Any = Body(...)) -> dict:
        try:
            session_id = payload.get("sessionId") if isinstance(payload, dict) else None
            if not isinstance(session_id, str) or not session_id.strip():
                raise InvalidRequest("'sessionId' must be a non-empty string")
            summary, answers = await _summarize_payload(payload)
        except InvalidRequest as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except OracleUnavailable as exc:
            raise _upstream_error(exc) from exc

        record = SessionRecord(
            session_id=session_id.strip(),
            created_at=datetime.now(timezone.utc),
            answers=answers,
            summary=summary,
            tags=parse_summary_tags(summary),
        )
        path = store.save(record)
        return {"summary": summary, "tags": record.tags, "record": path.name}

    @app.post("/admin/login")
    async def admin_login(payload: Any = Body(...)) -> dict:
        if auth is None:
            raise HTTPException(status_code=503, detail="Admin access is not configured")
        password = payload.get("password") if isinstance(payload, dict) else None
        if not isinstance(password, str):
            raise HTTPException(status_code=400, detail="'password' must be a string")
        try:
            token = auth.issue_token(password)
        except AuthError as exc:
            logger.warning("Rejected admin login")
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        return {"token": token, "expiresIn": auth.ttl_sec}

    @app.get("/admin/records", dependencies=[Depends(require_admin)])
    async def admin_records() -> dict:
        return {"records": [_record_to_dict(r) for r in store.load_all()]}

    return app
