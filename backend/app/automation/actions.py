"""
Action Model

Typed, immutable representation of the browser operations the engine can
replay. Each action type is its own frozen dataclass carrying only the fields
it needs; `validate` rejects malformed actions before they reach a page.

Wire format (JSON from the UI and recorder) is a flat object tagged by
"type" with camelCase field names; `parse_action` and `action_to_dict`
convert between the two.
"""

from dataclasses import dataclass, fields, replace
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type, Union

from .errors import ActionValidationError, ValidationReason


class ActionType(str, Enum):
    """Types of replayable actions"""
    GOTO = "goto"
    FILL = "fill"
    CLICK = "click"
    SELECT = "select"
    WAIT = "wait"
    HOVER = "hover"
    KEYBOARD = "keyboard"
    SCREENSHOT = "screenshot"


WAIT_UNTIL_STATES = ("load", "domcontentloaded", "networkidle", "commit")
MOUSE_BUTTONS = ("left", "right", "middle")
SCREENSHOT_FORMATS = ("png", "jpeg")


@dataclass(frozen=True)
class Action:
    """Base for all action variants"""
    type: ClassVar[ActionType]

    action_id: Optional[str] = None
    recorded_at: Optional[str] = None


@dataclass(frozen=True)
class GotoAction(Action):
    type: ClassVar[ActionType] = ActionType.GOTO

    url: str = ""
    wait_until: str = "load"
    timeout_ms: Optional[int] = None


@dataclass(frozen=True)
class FillAction(Action):
    type: ClassVar[ActionType] = ActionType.FILL

    selector: str = ""
    value: Optional[str] = None
    clear_first: bool = True
    timeout_ms: Optional[int] = None


@dataclass(frozen=True)
class ClickAction(Action):
    type: ClassVar[ActionType] = ActionType.CLICK

    selector: str = ""
    button: str = "left"
    click_count: int = 1
    delay_ms: int = 0
    timeout_ms: Optional[int] = None
    # Visible text of the clicked element, kept as context for recorded clicks
    text: Optional[str] = None


@dataclass(frozen=True)
class SelectAction(Action):
    type: ClassVar[ActionType] = ActionType.SELECT

    selector: str = ""
    value: Optional[Union[str, Tuple[str, ...]]] = None
    timeout_ms: Optional[int] = None


@dataclass(frozen=True)
class WaitAction(Action):
    type: ClassVar[ActionType] = ActionType.WAIT

    selector: Optional[str] = None
    duration_ms: Optional[int] = None
    predicate: Optional[str] = None
    timeout_ms: Optional[int] = None


@dataclass(frozen=True)
class HoverAction(Action):
    type: ClassVar[ActionType] = ActionType.HOVER

    selector: str = ""
    timeout_ms: Optional[int] = None


@dataclass(frozen=True)
class KeyboardAction(Action):
    type: ClassVar[ActionType] = ActionType.KEYBOARD

    key: Optional[str] = None
    keys: Tuple[str, ...] = ()

    @property
    def combination(self) -> str:
        """Key or key combination in Playwright's `Control+A` notation"""
        if self.key:
            return self.key
        return "+".join(self.keys)


@dataclass(frozen=True)
class ScreenshotAction(Action):
    type: ClassVar[ActionType] = ActionType.SCREENSHOT

    path: Optional[str] = None
    full_page: bool = False
    format: str = "png"


ACTION_CLASSES: Dict[ActionType, Type[Action]] = {
    ActionType.GOTO: GotoAction,
    ActionType.FILL: FillAction,
    ActionType.CLICK: ClickAction,
    ActionType.SELECT: SelectAction,
    ActionType.WAIT: WaitAction,
    ActionType.HOVER: HoverAction,
    ActionType.KEYBOARD: KeyboardAction,
    ActionType.SCREENSHOT: ScreenshotAction,
}

# Python field name -> wire (JSON) field name
_WIRE_NAMES = {
    "action_id": "id",
    "recorded_at": "recordedAt",
    "wait_until": "waitUntil",
    "timeout_ms": "timeoutMs",
    "clear_first": "clearFirst",
    "click_count": "clickCount",
    "delay_ms": "delayMs",
    "duration_ms": "durationMs",
    "full_page": "fullPage",
}

ActionLike = Union[Action, Mapping[str, Any]]


# ==================== Validation ====================

def _missing(action: Action, field_name: str, what: str) -> ActionValidationError:
    return ActionValidationError(
        ValidationReason.MISSING_FIELD,
        f"'{action.type.value}' action requires {what}",
        field=field_name
    )


def _invalid(field_name: str, message: str) -> ActionValidationError:
    return ActionValidationError(ValidationReason.INVALID_VALUE, message, field=field_name)


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_selector(action: Action):
    if _is_blank(getattr(action, "selector", None)):
        raise _missing(action, "selector", "a non-empty selector")


def _check_timeout(action: Action):
    timeout = getattr(action, "timeout_ms", None)
    if timeout is not None and (not _is_int(timeout) or timeout <= 0):
        raise _invalid("timeout_ms", f"timeoutMs must be a positive integer, got {timeout!r}")


def is_relative_screenshot_path(path: str) -> bool:
    """True for a relative path that stays inside its base directory"""
    for pure in (PurePosixPath(path), PureWindowsPath(path)):
        if pure.is_absolute() or pure.drive or pure.root:
            return False
        if ".." in pure.parts:
            return False
    return True


def validate(action: Action) -> Action:
    """
    Check that an action carries every field its type requires.

    Pure: never touches a page. Returns the action unchanged on success.

    Raises:
        ActionValidationError
    """
    action_type = getattr(action, "type", None)
    if not isinstance(action, Action) or ACTION_CLASSES.get(action_type) is not type(action):
        raise ActionValidationError(
            ValidationReason.UNSUPPORTED_ACTION_TYPE,
            f"Unsupported action type: {action_type!r}",
            field="type"
        )

    _check_timeout(action)

    if isinstance(action, GotoAction):
        if _is_blank(action.url):
            raise _missing(action, "url", "a non-empty url")
        if action.wait_until not in WAIT_UNTIL_STATES:
            raise _invalid("wait_until", f"waitUntil must be one of {', '.join(WAIT_UNTIL_STATES)}")

    elif isinstance(action, FillAction):
        _require_selector(action)
        if action.value is None:
            raise _missing(action, "value", "a value")
        if not isinstance(action.value, str):
            raise _invalid("value", "fill value must be a string")

    elif isinstance(action, ClickAction):
        _require_selector(action)
        if action.button not in MOUSE_BUTTONS:
            raise _invalid("button", f"button must be one of {', '.join(MOUSE_BUTTONS)}")
        if not _is_int(action.click_count) or action.click_count < 1:
            raise _invalid("click_count", "clickCount must be at least 1")
        if not _is_int(action.delay_ms) or action.delay_ms < 0:
            raise _invalid("delay_ms", "delayMs must be a non-negative integer")

    elif isinstance(action, SelectAction):
        _require_selector(action)
        if action.value is None:
            raise _missing(action, "value", "a value")
        values = action.value if isinstance(action.value, tuple) else (action.value,)
        if not values or not all(isinstance(v, str) for v in values):
            raise _invalid("value", "select value must be a string or a list of strings")

    elif isinstance(action, WaitAction):
        provided = [
            name for name, present in (
                ("selector", not _is_blank(action.selector)),
                ("duration_ms", action.duration_ms is not None),
                ("predicate", not _is_blank(action.predicate)),
            ) if present
        ]
        if not provided:
            raise _missing(action, "selector", "one of selector, durationMs or predicate")
        if len(provided) > 1:
            raise _invalid(
                provided[1],
                f"'wait' action takes exactly one of selector, durationMs or predicate (got {', '.join(provided)})"
            )
        if action.duration_ms is not None and (not _is_int(action.duration_ms) or action.duration_ms < 0):
            raise _invalid("duration_ms", "durationMs must be a non-negative integer")

    elif isinstance(action, HoverAction):
        _require_selector(action)

    elif isinstance(action, KeyboardAction):
        has_key = not _is_blank(action.key)
        has_keys = bool(action.keys)
        if not has_key and not has_keys:
            raise _missing(action, "key", "a key or key combination")
        if has_key and has_keys:
            raise _invalid("keys", "'keyboard' action takes either key or keys, not both")
        if has_keys and any(_is_blank(k) for k in action.keys):
            raise _invalid("keys", "key combination contains an empty key")

    elif isinstance(action, ScreenshotAction):
        if action.format not in SCREENSHOT_FORMATS:
            raise _invalid("format", f"format must be one of {', '.join(SCREENSHOT_FORMATS)}")
        if action.path is not None and _is_blank(action.path):
            raise _invalid("path", "path must be a non-empty string when given")
        if action.path is not None and not is_relative_screenshot_path(action.path):
            raise _invalid("path", "path must be relative to the screenshot directory")

    return action


def validate_sequence(actions: List[ActionLike]) -> List[Action]:
    """Parse and validate every action of a sequence, all before any runs"""
    if not actions:
        raise ActionValidationError(ValidationReason.EMPTY_SEQUENCE, "No actions provided")

    validated = []
    for index, item in enumerate(actions):
        try:
            validated.append(parse_action(item))
        except ActionValidationError as e:
            raise e.with_index(index) from e
    return validated


# ==================== Wire Conversion ====================

def parse_action(data: ActionLike) -> Action:
    """
    Build and validate a typed action from its wire form.

    Accepts an Action (validated as-is) or a mapping tagged by "type" with
    camelCase or snake_case keys. Unknown keys are ignored.
    """
    if isinstance(data, Action):
        return validate(data)

    if not isinstance(data, Mapping):
        raise ActionValidationError(
            ValidationReason.INVALID_VALUE,
            f"Action must be an object, got {type(data).__name__}"
        )

    raw_type = data.get("type")
    if raw_type is None or raw_type == "":
        raise ActionValidationError(
            ValidationReason.MISSING_FIELD, "Action is missing its 'type'", field="type"
        )

    try:
        action_type = ActionType(raw_type)
    except ValueError:
        raise ActionValidationError(
            ValidationReason.UNSUPPORTED_ACTION_TYPE,
            f"Unsupported action type: {raw_type!r}",
            field="type"
        ) from None

    cls = ACTION_CLASSES[action_type]
    kwargs = {}
    for f in fields(cls):
        wire = _WIRE_NAMES.get(f.name, f.name)
        if wire in data:
            kwargs[f.name] = data[wire]
        elif f.name in data:
            kwargs[f.name] = data[f.name]

    if "keys" in kwargs:
        keys = kwargs["keys"]
        if isinstance(keys, str):
            keys = keys.split("+")
        if not isinstance(keys, (list, tuple)):
            raise _invalid("keys", "keys must be a list of key names")
        kwargs["keys"] = tuple(keys)

    if cls is SelectAction and isinstance(kwargs.get("value"), list):
        kwargs["value"] = tuple(kwargs["value"])

    return validate(cls(**kwargs))


def action_to_dict(action: Action) -> Dict[str, Any]:
    """Serialize an action to its wire form, omitting unset optional fields"""
    result: Dict[str, Any] = {"type": action.type.value}
    for f in fields(action):
        value = getattr(action, f.name)
        if value is None:
            continue
        if f.name == "keys" and not value:
            continue
        if isinstance(value, tuple):
            value = list(value)
        result[_WIRE_NAMES.get(f.name, f.name)] = value
    return result


def stamp(action: Action, when: Optional[datetime] = None) -> Action:
    """Return a copy carrying a capture timestamp"""
    when = when or datetime.utcnow()
    return replace(action, recorded_at=when.isoformat())


def with_id(action: Action, action_id: str) -> Action:
    """Return a copy carrying a stable identifier"""
    return replace(action, action_id=action_id)
