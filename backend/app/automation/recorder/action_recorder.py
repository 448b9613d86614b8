"""
Interaction Recorder

Records what a user does in a live browser page ("take control" mode)
and turns it into replayable actions.

A listener script injected into the page reports click, input and change
events together with a description of the target element; the recorder
infers a stable selector for that element and appends a `click` or
`fill` action to the active recording session.
"""

import json
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from ..actions import Action, ClickAction, FillAction, stamp
from ..errors import RecordingStateError

# Configure logging
logger = logging.getLogger(__name__)


FORM_CONTROL_TAGS = ("input", "select", "textarea", "button")
VALUE_TAGS = ("input", "textarea", "select")
# Inputs whose change events are covered by the click that caused them
CLICK_ONLY_INPUT_TYPES = ("checkbox", "radio", "submit", "button", "reset", "file", "image")
MAX_TEXT_LENGTH = 200
# Page events that re-inject the listener script (it replaces its own earlier copy)
REINJECT_EVENTS = ("domcontentloaded", "load")


# ==================== Selector Inference ====================

def css_escape(ident: str) -> str:
    """
    Escape a string for use as a CSS identifier (same rules as the
    browser's CSS.escape), so ids like ":r0:" or "123" and classes like
    "md:flex" stay valid selectors.
    """
    out = []
    for i, ch in enumerate(ident):
        code = ord(ch)
        if code == 0:
            out.append("\ufffd")
        elif 0x01 <= code <= 0x1F or code == 0x7F:
            out.append(f"\\{code:x} ")
        elif ch.isdigit() and ch.isascii() and (i == 0 or (i == 1 and ident[0] == "-")):
            out.append(f"\\{code:x} ")
        elif i == 0 and ch == "-" and len(ident) == 1:
            out.append("\\-")
        elif code >= 0x80 or ch in "-_" or (ch.isascii() and ch.isalnum()):
            out.append(ch)
        else:
            out.append("\\" + ch)
    return "".join(out)


def _attribute_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def infer_selector(target: Mapping[str, Any]) -> str:
    """
    Derive a stable CSS selector for an event target.

    Precedence:
        1. id                      -> #id
        2. name (form controls)    -> tag[name="..."]
        3. class list              -> .class1.class2
        4. tag, with :nth-child(n) only when same-tag siblings exist
    """
    tag = (target.get("tagName") or "").lower() or "*"

    elem_id = (target.get("id") or "").strip()
    if elem_id:
        return "#" + css_escape(elem_id)

    name = (target.get("name") or "").strip()
    if name and tag in FORM_CONTROL_TAGS:
        return f'{tag}[name="{_attribute_value(name)}"]'

    classes = target.get("classList")
    if classes is None:
        classes = (target.get("className") or "").split()
    classes = [c for c in classes if isinstance(c, str) and c.strip()]
    if classes:
        return "." + ".".join(css_escape(c.strip()) for c in classes)

    same_tag_siblings = int(target.get("sameTagSiblingCount") or 0)
    child_index = int(target.get("childIndex") or 0)
    if same_tag_siblings > 1 and child_index > 0:
        return f"{tag}:nth-child({child_index})"
    return tag


# ==================== Sessions ====================

@dataclass
class RecordingSession:
    """One chunk's recording: its accumulated actions and live listeners"""
    session_id: str
    chunk_id: str
    started_at: str
    active: bool = True
    actions: List[Action] = field(default_factory=list)
    completed_at: Optional[str] = None
    subscription: Optional["RecordingSubscription"] = None
    ignored_events: int = 0


# Runs in the page. Describes event targets and reports them through the
# exposed binding; stores its own cleanup on window for teardown.
LISTENER_SCRIPT = r"""
(bindingName) => {
    const cleanupKey = '__recorderCleanup_' + bindingName;
    if (window[cleanupKey]) {
        window[cleanupKey]();
    }

    function describe(el) {
        const parent = el.parentElement;
        const siblings = parent ? Array.from(parent.children) : [el];
        return {
            tagName: el.tagName ? el.tagName.toLowerCase() : '',
            id: el.id || null,
            name: el.getAttribute ? el.getAttribute('name') : null,
            classList: el.classList ? Array.from(el.classList) : [],
            textContent: (el.textContent || '').trim().substring(0, 200),
            value: 'value' in el ? String(el.value) : null,
            inputType: el.type || null,
            childIndex: siblings.indexOf(el) + 1,
            sameTagSiblingCount: siblings.filter(s => s.tagName === el.tagName).length,
        };
    }

    function report(type, event) {
        const target = event.target;
        if (!target || target.nodeType !== 1) return;
        try {
            window[bindingName](JSON.stringify({
                type: type,
                target: describe(target),
                url: window.location.href,
                timestamp: Date.now(),
            }));
        } catch (e) {
            console.warn('[Recorder] Failed to report event:', e);
        }
    }

    const onClick = (e) => report('click', e);
    const onInput = (e) => report('input', e);
    const onChange = (e) => report('change', e);

    document.addEventListener('click', onClick, true);
    document.addEventListener('input', onInput, true);
    document.addEventListener('change', onChange, true);

    window[cleanupKey] = () => {
        document.removeEventListener('click', onClick, true);
        document.removeEventListener('input', onInput, true);
        document.removeEventListener('change', onChange, true);
        delete window[cleanupKey];
    };
}
"""

CLEANUP_SCRIPT = r"""
(bindingName) => {
    const cleanup = window['__recorderCleanup_' + bindingName];
    if (cleanup) cleanup();
}
"""


class RecordingSubscription:
    """
    Live event listeners on one page.

    `attach()` exposes a Python callback to the page and injects the
    listener script (again after every navigation); `close()` removes both.
    """

    def __init__(self, page, recorder: "InteractionRecorder", session: RecordingSession):
        self.page = page
        self.recorder = recorder
        self.session = session
        self.binding_name = f"__recordInteraction_{session.session_id}"
        self._closed = False

    async def attach(self):
        await self.page.expose_function(self.binding_name, self._on_event)
        await self._inject()
        for event in REINJECT_EVENTS:
            self.page.on(event, self._on_navigation)
        logger.info(f"Recording listeners attached for chunk {self.session.chunk_id}")

    async def close(self):
        """Remove listeners. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        for event in REINJECT_EVENTS:
            try:
                self.page.remove_listener(event, self._on_navigation)
            except Exception as e:
                logger.debug(f"Could not remove {event} listener: {e}")
        try:
            await self.page.evaluate(CLEANUP_SCRIPT, self.binding_name)
        except Exception as e:
            # The page may already be closed or navigating
            logger.debug(f"Listener cleanup script failed: {e}")
        logger.info(f"Recording listeners removed for chunk {self.session.chunk_id}")

    async def _inject(self):
        await self.page.evaluate(LISTENER_SCRIPT, self.binding_name)

    async def _on_navigation(self, _page=None):
        if self._closed or not self.session.active:
            return
        try:
            await self._inject()
        except Exception as e:
            logger.warning(f"Re-injecting recording listeners failed: {e}")

    async def _on_event(self, payload: str):
        if self._closed or not self.session.active:
            return
        try:
            event = json.loads(payload)
        except (TypeError, ValueError) as e:
            logger.warning(f"Dropping malformed recorder event: {e}")
            return
        self.recorder.record_action(self.session, event)


class InteractionRecorder:
    """
    Turns observed DOM events into actions.

    At most one recording is active at a time; starting a second one, or
    stopping one that is not active, raises RecordingStateError.
    """

    def __init__(self):
        self._current: Optional[RecordingSession] = None

    @property
    def current_session(self) -> Optional[RecordingSession]:
        return self._current if self._current and self._current.active else None

    def is_recording(self, chunk_id: Optional[str] = None) -> bool:
        session = self.current_session
        if session is None:
            return False
        return chunk_id is None or session.chunk_id == chunk_id

    async def start_recording(self, chunk_id: str, page=None) -> RecordingSession:
        """
        Start recording for a chunk.

        With a page, live listeners are attached to it; without one, events
        are fed in through `record_action`.
        """
        active = self.current_session
        if active is not None:
            raise RecordingStateError(
                f"A recording is already active for chunk '{active.chunk_id}'"
            )

        session = RecordingSession(
            session_id=uuid.uuid4().hex[:12],
            chunk_id=chunk_id,
            started_at=datetime.utcnow().isoformat()
        )
        self._current = session

        if page is not None:
            subscription = RecordingSubscription(page, self, session)
            try:
                await subscription.attach()
            except Exception:
                session.active = False
                self._current = None
                await subscription.close()
                raise
            session.subscription = subscription

        logger.info(f"Started recording for chunk {chunk_id} (session {session.session_id})")
        return session

    def record_action(self, session: RecordingSession, event: Mapping[str, Any]) -> Optional[Action]:
        """
        Convert one observed event into an action and append it.

        Clicks become `click` actions carrying the element's text; input and
        change events on input/textarea/select become `fill` actions with
        the field's current value. Consecutive input events on the same
        field collapse into one `fill`. Other events are ignored (None).
        """
        if not session.active:
            raise RecordingStateError(f"Recording for chunk '{session.chunk_id}' is not active")

        event_type = event.get("type")
        target = event.get("target") or {}
        tag = (target.get("tagName") or "").lower()
        input_type = (target.get("inputType") or "").lower()

        if event_type == "click":
            text = (target.get("textContent") or "").strip()[:MAX_TEXT_LENGTH]
            action = ClickAction(selector=infer_selector(target), text=text or None)

        elif event_type in ("input", "change") and tag in VALUE_TAGS:
            if tag == "input" and input_type in CLICK_ONLY_INPUT_TYPES:
                session.ignored_events += 1
                return None
            value = target.get("value")
            action = FillAction(selector=infer_selector(target), value="" if value is None else str(value))

            last = session.actions[-1] if session.actions else None
            if isinstance(last, FillAction) and last.selector == action.selector:
                action = stamp(action)
                session.actions[-1] = action
                logger.debug(f"Updated fill on {action.selector}")
                return action

        else:
            session.ignored_events += 1
            logger.debug(f"Ignoring {event_type} event on <{tag or '?'}>")
            return None

        action = stamp(action)
        session.actions.append(action)
        logger.debug(f"Recorded {action.type.value} on {getattr(action, 'selector', '')}")
        return action

    async def stop_recording(self, session: RecordingSession) -> List[Action]:
        """Tear down listeners, mark the session inactive and return its actions"""
        if not session.active or self._current is not session:
            raise RecordingStateError(
                f"No active recording for chunk '{session.chunk_id}'"
            )

        session.active = False
        session.completed_at = datetime.utcnow().isoformat()
        self._current = None

        if session.subscription is not None:
            await session.subscription.close()

        logger.info(
            f"Stopped recording for chunk {session.chunk_id}: {len(session.actions)} action(s)"
        )
        return list(session.actions)

    @asynccontextmanager
    async def recording(self, chunk_id: str, page=None) -> AsyncIterator[RecordingSession]:
        """Record for the duration of a block; listeners are always removed"""
        session = await self.start_recording(chunk_id, page=page)
        try:
            yield session
        finally:
            if session.active:
                await self.stop_recording(session)


def describe_session(session: RecordingSession) -> Dict[str, Any]:
    """Summary of a recording session for API responses"""
    return {
        "sessionId": session.session_id,
        "chunkId": session.chunk_id,
        "active": session.active,
        "startedAt": session.started_at,
        "completedAt": session.completed_at,
        "actionCount": len(session.actions),
    }
