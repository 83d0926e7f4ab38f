from __future__ import annotations

import re
import subprocess
from enum import Enum
from typing import Any, Callable

from sketch_uploader.domain.models import BoardUserField, CompileOptions, UploadOptions


DEFAULT_CLI_PATH = "arduino-cli"
DEFAULT_TIMEOUT_SECONDS = 300.0
_REDACTED = "********"
# Uploader messages for a missing or busy port, e.g. avrdude
# `ser_open(): can't open device "/dev/ttyACM0": No such file or directory`,
# esptool `could not open port /dev/ttyUSB0: [Errno 16] Device or resource busy`,
# bossac `No device found on /dev/ttyACM0` and arduino-cli `port /dev/ttyUSB0 not found`.
# Every other failed upload stays an upload error.
_CONNECTION_FAILURE_PATTERN = re.compile(
    r"\b(?:port|device)\b[^\n]*(?:not found|busy|no such file|access is denied|permission denied)"
    r"|could not open port"
    r"|no device found",
    re.IGNORECASE,
)


class CoreErrorKind(str, Enum):
    COMPILE = "compile"
    CONNECTION = "connection"
    UPLOAD = "upload"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return _KIND_LABELS[self]


_KIND_LABELS: dict[CoreErrorKind, str] = {
    CoreErrorKind.COMPILE: "Compilation error",
    CoreErrorKind.CONNECTION: "Connection error",
    CoreErrorKind.UPLOAD: "Upload error",
    CoreErrorKind.UNKNOWN: "Error",
}


class CoreError(RuntimeError):
    """Raised when compiling or uploading a sketch fails."""

    def __init__(self, kind: CoreErrorKind, detail: str) -> None:
        self.kind = kind
        self.detail = detail.strip()
        super().__init__(f"{kind.label}: {self.detail}")

    @classmethod
    def from_message(cls, message: str) -> "CoreError":
        text = str(message or "").strip()
        for kind in (CoreErrorKind.UPLOAD, CoreErrorKind.COMPILE, CoreErrorKind.CONNECTION):
            prefix = f"{kind.label}:"
            if text.startswith(prefix):
                return cls(kind, text[len(prefix):])
        return cls(CoreErrorKind.UNKNOWN, text)


Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class CoreService:
    def __init__(
        self,
        cli_path: str = DEFAULT_CLI_PATH,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        runner: Runner | None = None,
    ) -> None:
        self.cli_path = cli_path.strip() or DEFAULT_CLI_PATH
        self.timeout = timeout
        self._runner = runner or subprocess.run

    @staticmethod
    def _require_fqbn(fqbn: str | None) -> str:
        value = (fqbn or "").strip()
        if not value:
            raise ValueError("A board with an FQBN must be selected.")
        return value

    @staticmethod
    def _require_sketch(sketch_path: str) -> str:
        value = sketch_path.strip()
        if not value:
            raise ValueError("Sketch path is required.")
        return value

    def compile_command(self, options: CompileOptions) -> list[str]:
        args = [
            self.cli_path,
            "compile",
            "--fqbn",
            self._require_fqbn(options.board.fqbn),
        ]
        if options.verbose:
            args.append("--verbose")
        args.append(self._require_sketch(options.sketch_path))
        return args

    def upload_command(self, options: UploadOptions) -> list[str]:
        port = options.port.strip()
        if not port:
            raise ValueError("An upload port is required.")
        args = [
            self.cli_path,
            "upload",
            "--fqbn",
            self._require_fqbn(options.board.fqbn),
            "--port",
            port,
        ]
        for field in options.user_fields:
            args.extend(["--upload-field", f"{field.name}={field.value}"])
        if options.verbose:
            args.append("--verbose")
        if options.verify:
            args.append("--verify")
        args.append(self._require_sketch(options.sketch_path))
        return args

    def compile(self, options: CompileOptions) -> str:
        return self._run(self.compile_command(options), CoreErrorKind.COMPILE)

    def upload(self, options: UploadOptions) -> str:
        return self._run(
            self.upload_command(options),
            CoreErrorKind.UPLOAD,
            secrets=options.user_fields,
        )

    @staticmethod
    def classify_upload_failure(output: str) -> CoreErrorKind:
        if _CONNECTION_FAILURE_PATTERN.search(output or ""):
            return CoreErrorKind.CONNECTION
        return CoreErrorKind.UPLOAD

    @staticmethod
    def _redact(text: str, fields: list[BoardUserField]) -> str:
        redacted = text
        for field in fields:
            if field.secret and field.value:
                redacted = redacted.replace(field.value, _REDACTED)
        return redacted

    def _run(
        self,
        args: list[str],
        failure_kind: CoreErrorKind,
        secrets: list[BoardUserField] | None = None,
    ) -> str:
        fields = secrets or []
        kwargs: dict[str, Any] = {
            "capture_output": True,
            "text": True,
            "timeout": self.timeout,
            "check": False,
        }
        try:
            completed = self._runner(args, **kwargs)
        except FileNotFoundError as exc:
            raise CoreError(
                CoreErrorKind.UNKNOWN,
                f"arduino-cli was not found at '{self.cli_path}'.",
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise CoreError(
                CoreErrorKind.UNKNOWN,
                f"'{args[1]}' did not finish within {self.timeout:g} seconds.",
            ) from exc
        except OSError as exc:
            raise CoreError(CoreErrorKind.UNKNOWN, f"Failed to run arduino-cli: {exc}") from exc

        stdout = completed.stdout or ""
        if completed.returncode != 0:
            stderr = completed.stderr or ""
            detail = stderr.strip() or stdout.strip() or f"exit code {completed.returncode}"
            kind = failure_kind
            if failure_kind is CoreErrorKind.UPLOAD:
                kind = self.classify_upload_failure(f"{stderr}\n{stdout}")
            raise CoreError(kind, self._redact(detail, fields))
        return self._redact(stdout, fields)
