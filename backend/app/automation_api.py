"""
Automation API

HTTP endpoints for video analysis, action execution, recorded-action
persistence and live "take control" recording.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from automation import (
    ActionExecutor,
    ActionValidationError,
    AnalysisError,
    BrowserSession,
    ChunkStore,
    EngineConfig,
    GotoAction,
    InvalidVideoUrlError,
    RecordingStateError,
    RunPolicy,
    SequenceRunner,
    SessionError,
    SessionOptions,
    TransientNetworkError,
    VideoAnalyzer,
    action_to_dict,
    validate_sequence,
)
from automation.actions import Action, stamp, with_id
from automation.core.browser_session import SessionFactory
from automation.recorder.action_recorder import InteractionRecorder, RecordingSession, describe_session
from integration_suggestions import analyze_for_integrations

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api", tags=["Automation"])


# ==================== Services ====================

class RecordingController:
    """
    Owns the browser session behind the active live recording.

    The recorder allows one active recording at a time; the controller
    pairs it with the visible browser it records from and releases that
    browser when recording stops.
    """

    def __init__(
        self,
        recorder: Optional[InteractionRecorder] = None,
        session_factory: Optional[SessionFactory] = None,
        session_options: Optional[SessionOptions] = None,
        navigation_timeout_ms: int = 30000
    ):
        self.recorder = recorder or InteractionRecorder()
        self.session_factory = session_factory or BrowserSession.acquire
        self.session_options = session_options or SessionOptions(headless=False)
        self.navigation_timeout_ms = navigation_timeout_ms
        self._session: Optional[RecordingSession] = None
        self._browser = None
        self._lock = asyncio.Lock()

    async def start(self, chunk_id: str, start_url: Optional[str] = None) -> RecordingSession:
        """
        Open a browser, navigate to start_url and start recording.

        Raises:
            RecordingStateError: a recording is already active
            SessionError: the browser could not be started
        """
        async with self._lock:
            active = self.recorder.current_session
            if active is not None:
                raise RecordingStateError(
                    f"A recording is already active for chunk '{active.chunk_id}'"
                )

            browser = await self.session_factory(self.session_options)
            try:
                if start_url:
                    await browser.page.goto(start_url, timeout=self.navigation_timeout_ms)
                session = await self.recorder.start_recording(chunk_id, page=browser.page)
            except Exception:
                await browser.release()
                raise

            self._session = session
            self._browser = browser
            return session

    async def stop(self, chunk_id: Optional[str] = None) -> RecordingSession:
        """
        Stop the active recording and close its browser.

        Raises:
            RecordingStateError: no recording is active (for this chunk)
        """
        async with self._lock:
            session = self._session
            if session is None or not session.active:
                raise RecordingStateError("No recording is active")
            if chunk_id is not None and session.chunk_id != chunk_id:
                raise RecordingStateError(
                    f"No active recording for chunk '{chunk_id}' "
                    f"(recording chunk '{session.chunk_id}')"
                )

            browser = self._browser
            self._session = None
            self._browser = None
            try:
                await self.recorder.stop_recording(session)
            finally:
                if browser is not None:
                    await browser.release()
            return session


@dataclass
class AutomationServices:
    """Everything the endpoints share"""
    config: EngineConfig
    runner: SequenceRunner
    analyzer: VideoAnalyzer
    chunk_store: ChunkStore = field(default_factory=ChunkStore)
    recordings: Optional[RecordingController] = None


def build_services(config: Optional[EngineConfig] = None) -> AutomationServices:
    """Wire the engine from configuration"""
    config = config or EngineConfig()
    session_options = SessionOptions(
        headless=config.headless,
        viewport=config.viewport,
        user_agent=config.user_agent
    )
    runner = SequenceRunner(
        executor_factory=lambda page: ActionExecutor(
            page=page,
            timeout=config.element_timeout_ms,
            navigation_timeout=config.navigation_timeout_ms,
            screenshot_dir=config.screenshot_dir
        ),
        session_options=session_options,
        semaphore=asyncio.Semaphore(config.max_concurrent_sessions)
    )
    recordings = RecordingController(
        session_options=SessionOptions(
            headless=config.recording_headless,
            viewport=config.viewport,
            user_agent=config.user_agent
        ),
        navigation_timeout_ms=config.navigation_timeout_ms
    )
    return AutomationServices(
        config=config,
        runner=runner,
        analyzer=VideoAnalyzer(config=config),
        recordings=recordings
    )


_services: Optional[AutomationServices] = None


def get_services() -> AutomationServices:
    """Get or create the shared services"""
    global _services
    if _services is None:
        _services = build_services(EngineConfig.from_env())
    return _services


def set_services(services: AutomationServices):
    global _services
    _services = services


# ==================== Request Models ====================

class AnalyzeRequest(BaseModel):
    """Video analysis request; `loomUrl` is accepted for older clients"""
    model_config = ConfigDict(populate_by_name=True)

    video_url: Optional[str] = Field(default=None, alias="videoUrl")
    loom_url: Optional[str] = Field(default=None, alias="loomUrl")
    transcript: Optional[Any] = None


class ExecuteRequest(BaseModel):
    """Run one action or a sequence"""
    model_config = ConfigDict(populate_by_name=True)

    action: Optional[Dict[str, Any]] = None
    actions: Optional[List[Dict[str, Any]]] = None
    headless: Optional[bool] = None
    stop_on_error: bool = Field(default=False, alias="stopOnError")
    emit_skipped: bool = Field(default=False, alias="emitSkipped")


class RecordRequest(BaseModel):
    """Save recorded actions for a chunk"""
    model_config = ConfigDict(populate_by_name=True)

    chunk_id: str = Field(alias="chunkId")
    actions: List[Dict[str, Any]] = Field(default_factory=list)
    validate_replay: bool = Field(default=False, alias="validate")


class StartRecordingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_url: Optional[str] = Field(default=None, alias="startUrl")


class IntegrationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    visited_urls: Optional[List[str]] = Field(default=None, alias="visitedUrls")
    chunks: Optional[List[Dict[str, Any]]] = None
    transcript: Optional[Any] = None


# ==================== Helpers ====================

def _analysis_error_response(error: AnalysisError) -> JSONResponse:
    if isinstance(error, InvalidVideoUrlError):
        status_code = 400
    elif isinstance(error, TransientNetworkError):
        status_code = 503
    else:
        status_code = 502
    return JSONResponse(status_code=status_code, content={"error": error.to_dict()})


def _validation_detail(error: ActionValidationError) -> Dict[str, Any]:
    return {
        "message": str(error),
        "reason": error.reason.value,
        "field": error.field,
        "index": error.index,
    }


def _normalize_recorded(chunk_id: str, actions: List[Action], placeholder_url: str) -> List[Action]:
    """Give recorded actions stable ids; an empty recording becomes one goto"""
    if not actions:
        actions = [stamp(GotoAction(url=placeholder_url))]
    normalized = []
    for index, action in enumerate(actions):
        if action.recorded_at is None:
            action = stamp(action)
        normalized.append(with_id(action, f"{chunk_id}-action-{index}"))
    return normalized


async def _save_to_chunk(store: ChunkStore, chunk_id: str, actions: List[Action]) -> bool:
    if store.get(chunk_id) is None:
        return False
    await store.replace_action(chunk_id, actions)
    return True


# ==================== Analysis Endpoints ====================

@router.post("/analyze")
async def analyze_video(request: AnalyzeRequest, services: AutomationServices = Depends(get_services)):
    """
    Segment a video into chunks.

    Invalid URLs answer 400; provider failures answer 502 (not worth
    retrying) or 503 (transient, retry later). Error bodies carry
    {"error": {"kind", "message", "retryable"}}.
    """
    video_url = request.video_url or request.loom_url
    try:
        result = await services.analyzer.analyze(video_url)
    except AnalysisError as e:
        logger.warning(f"Video analysis failed ({e.kind}): {e}")
        return _analysis_error_response(e)

    await services.chunk_store.replace_all(result.chunks)

    response = result.to_dict()
    response["integrations"] = analyze_for_integrations(
        chunks=result.chunks,
        transcript=request.transcript
    )
    return response


@router.post("/integrations")
async def suggest_integrations(request: IntegrationRequest):
    """Identify applications and suggest Make.com / Zapier integrations"""
    return analyze_for_integrations(
        chunks=request.chunks,
        visited_urls=request.visited_urls,
        transcript=request.transcript
    )


# ==================== Chunk Endpoints ====================

@router.get("/chunks")
async def list_chunks(services: AutomationServices = Depends(get_services)):
    return {"chunks": [chunk.to_dict() for chunk in services.chunk_store.list()]}


@router.get("/chunks/{chunk_id}")
async def get_chunk(chunk_id: str, services: AutomationServices = Depends(get_services)):
    chunk = services.chunk_store.get(chunk_id)
    if not chunk:
        raise HTTPException(status_code=404, detail="Chunk not found")
    return chunk.to_dict()


# ==================== Execution Endpoints ====================

@router.post("/execute")
async def execute_actions(request: ExecuteRequest, services: AutomationServices = Depends(get_services)):
    """Run an action or an action sequence in a fresh browser session"""
    actions = list(request.actions or [])
    if request.action is not None:
        actions = [request.action] + actions

    policy = RunPolicy(
        stop_on_error=request.stop_on_error,
        headless=services.config.headless if request.headless is None else request.headless,
        emit_skipped=request.emit_skipped
    )

    try:
        result = await services.runner.run(actions, policy=policy)
    except ActionValidationError as e:
        raise HTTPException(status_code=400, detail=_validation_detail(e))
    except SessionError as e:
        logger.error(f"Could not start a browser session: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    return result.to_dict()


@router.post("/record")
async def record_actions(request: RecordRequest, services: AutomationServices = Depends(get_services)):
    """
    Save a chunk's recorded actions.

    Actions get "<chunkId>-action-<index>" ids. With `validate`, the
    sequence is replayed headless and stops at the first failure; the
    chunk is only updated when the replay succeeds.
    """
    try:
        parsed = validate_sequence(request.actions) if request.actions else []
    except ActionValidationError as e:
        raise HTTPException(status_code=400, detail=_validation_detail(e))

    actions = _normalize_recorded(request.chunk_id, parsed, services.config.placeholder_url)

    response: Dict[str, Any] = {
        "success": True,
        "chunkId": request.chunk_id,
        "actions": [action_to_dict(a) for a in actions],
        "saved": False,
    }

    if request.validate_replay:
        try:
            replay = await services.runner.run(actions, policy=RunPolicy(stop_on_error=True, headless=True))
        except SessionError as e:
            logger.error(f"Validation replay could not start a browser: {e}")
            raise HTTPException(status_code=503, detail=str(e))
        response["validation"] = replay.to_dict()
        response["success"] = replay.success
        if not replay.success:
            logger.warning(f"Validation replay failed; chunk {request.chunk_id} left unchanged")
            return response

    response["saved"] = await _save_to_chunk(services.chunk_store, request.chunk_id, actions)
    return response


# ==================== Live Recording Endpoints ====================

@router.post("/recordings/{chunk_id}/start")
async def start_recording(
    chunk_id: str,
    request: Optional[StartRecordingRequest] = None,
    services: AutomationServices = Depends(get_services)
):
    """Open a visible browser and record the user's interaction"""
    start_url = request.start_url if request else None
    if start_url is None:
        chunk = services.chunk_store.get(chunk_id)
        goto_urls = [
            a.url for a in (chunk.actions_for_replay() if chunk else [])
            if isinstance(a, GotoAction)
        ]
        start_url = goto_urls[0] if goto_urls else services.config.placeholder_url

    try:
        session = await services.recordings.start(chunk_id, start_url=start_url)
    except RecordingStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SessionError as e:
        logger.error(f"Could not start a recording browser: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    return {"success": True, "recording": describe_session(session), "startUrl": start_url}


@router.post("/recordings/{chunk_id}/stop")
async def stop_recording(chunk_id: str, services: AutomationServices = Depends(get_services)):
    """Stop recording, close the browser and save the recorded actions"""
    try:
        session = await services.recordings.stop(chunk_id)
    except RecordingStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    actions = _normalize_recorded(chunk_id, session.actions, services.config.placeholder_url)
    saved = await _save_to_chunk(services.chunk_store, chunk_id, actions)

    return {
        "success": True,
        "recording": describe_session(session),
        "actions": [action_to_dict(a) for a in actions],
        "saved": saved,
    }


@router.get("/health")
async def health():
    return {"status": "ok"}
