"""
Diagnostic Data Models

Defines findings, the per-invocation result sink and the precondition
error returned by a diagnostic's gate.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple

from ..utils.time import utcnow

logger = logging.getLogger(__name__)


class Level(IntEnum):
    """Finding severity, ordered from least to most severe."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @property
    def logging_level(self) -> int:
        return _LOGGING_LEVELS[self]

    @classmethod
    def parse(cls, value: str) -> "Level":
        """Parse a level name such as ``"warning"`` or ``"WARN"``."""
        name = value.strip().upper()
        if name == "WARN":
            name = "WARNING"
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"Unknown level: {value}")


_LOGGING_LEVELS = {
    Level.DEBUG: logging.DEBUG,
    Level.INFO: logging.INFO,
    Level.WARNING: logging.WARNING,
    Level.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Message:
    """
    Structured message: a stable code, a template and its parameters.

    Positional ``args`` fill ``%`` templates, named ``params`` fill
    ``str.format`` templates. Producing a message never formats it;
    the reporting layer calls ``render()``.
    """
    code: str
    template: str
    args: Tuple[Any, ...] = ()
    params: Dict[str, Any] = field(default_factory=dict)

    def render(self) -> str:
        text = self.template
        try:
            if self.args:
                text = text % self.args
            if self.params:
                text = text.format(**self.params)
        except (TypeError, ValueError, KeyError, IndexError) as e:
            logger.debug(f"Could not render message {self.code}: {e}")
            extra = [repr(a) for a in self.args]
            extra += [f"{k}={v!r}" for k, v in self.params.items()]
            return f"{self.template} [{', '.join(extra)}]"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "template": self.template,
            "args": [str(a) for a in self.args],
            "params": {k: str(v) for k, v in self.params.items()},
            "text": self.render(),
        }


@dataclass(frozen=True)
class Finding:
    """
    One leveled, coded diagnostic message.

    Attributes:
        level: Severity
        code: Stable message code, used for documentation lookup
        message: Structured message
        origin: Name of the diagnostic that emitted it
        error: Underlying error kept for forensic display
        timestamp: Emission time (UTC)
    """
    level: Level
    code: str
    message: Message
    origin: str = ""
    error: Optional[BaseException] = None
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def text(self) -> str:
        return self.message.render()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.label,
            "code": self.code,
            "origin": self.origin,
            "message": self.text,
            "error": f"({type(self.error).__name__}) {self.error}" if self.error else None,
            "timestamp": self.timestamp.isoformat(),
        }


class DiagnosticResult:
    """
    Append-only collector of findings for one diagnostic invocation.

    Appending never fails. Once the invocation returns the sink is closed
    and later appends are dropped.

    Example:
        r = DiagnosticResult("NodeConfigCheck")
        r.debug("DH1001", "Looking for node config file at '%s'", path)
        r.warn("DClu2008", "Failed to read logs for {pod_name}", pod_name="router-1")
        if r.failed:
            ...
    """

    def __init__(self, name: str):
        self.name = name
        self._findings: List[Finding] = []
        self._closed = False

    def debug(self, code: str, template: str, *args: Any, err: Optional[BaseException] = None, **params: Any) -> None:
        self._append(Level.DEBUG, code, template, args, params, err)

    def info(self, code: str, template: str, *args: Any, err: Optional[BaseException] = None, **params: Any) -> None:
        self._append(Level.INFO, code, template, args, params, err)

    def warn(self, code: str, template: str, *args: Any, err: Optional[BaseException] = None, **params: Any) -> None:
        self._append(Level.WARNING, code, template, args, params, err)

    def error(self, code: str, template: str, *args: Any, err: Optional[BaseException] = None, **params: Any) -> None:
        self._append(Level.ERROR, code, template, args, params, err)

    def _append(
        self,
        level: Level,
        code: str,
        template: str,
        args: Tuple[Any, ...],
        params: Dict[str, Any],
        err: Optional[BaseException],
    ) -> None:
        if self._closed:
            logger.warning(f"Dropping finding {code} for {self.name}: result already closed")
            return

        finding = Finding(
            level=level,
            code=code,
            message=Message(code=code, template=template, args=tuple(args), params=dict(params)),
            origin=self.name,
            error=err,
        )
        self._findings.append(finding)
        logger.log(level.logging_level, f"[{self.name}] {code}: {finding.text}")

    def close(self) -> None:
        """Mark the invocation finished."""
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def findings(self) -> Tuple[Finding, ...]:
        return tuple(self._findings)

    def at_level(self, level: Level) -> List[Finding]:
        return [f for f in self._findings if f.level == level]

    @property
    def errors(self) -> List[Finding]:
        return self.at_level(Level.ERROR)

    @property
    def warnings(self) -> List[Finding]:
        return self.at_level(Level.WARNING)

    @property
    def failed(self) -> bool:
        """Any error-level finding fails the diagnostic."""
        return any(f.level == Level.ERROR for f in self._findings)

    @property
    def passed(self) -> bool:
        return not self.failed

    def counts(self) -> Dict[str, int]:
        return {level.label: len(self.at_level(level)) for level in Level}

    def to_dict(self, min_level: Level = Level.DEBUG) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "summary": self.counts(),
            "findings": [f.to_dict() for f in self._findings if f.level >= min_level],
        }

    def __len__(self) -> int:
        return len(self._findings)

    def __repr__(self) -> str:
        return f"DiagnosticResult(name={self.name!r}, findings={len(self._findings)})"


class DiagnosticError(Exception):
    """
    Precondition failure returned from ``Diagnostic.can_run()``.

    Attributes:
        code: Message code
        message: Human readable explanation
        cause: Underlying error, if any
    """

    def __init__(self, code: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "cause": f"({type(self.cause).__name__}) {self.cause}" if self.cause else None,
        }
