"""Typed exception hierarchy for aabconv."""


class AabconvError(Exception):
    """Base exception for all aabconv errors."""

    pass


class ToolNotFoundError(AabconvError):
    """Raised when a required external tool is not installed."""

    def __init__(self, tool: str, install_hint: str | None = None):
        self.tool = tool
        self.install_hint = install_hint
        message = f"Required tool not found: {tool}"
        if install_hint:
            message += f"\nInstall: {install_hint}"
        super().__init__(message)


class ProcessError(AabconvError):
    """Raised when a subprocess command fails or cannot be started."""

    def __init__(self, command: list[str], returncode: int, stderr: str):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        cmd_str = " ".join(command)
        super().__init__(f"Command failed (exit {returncode}): {cmd_str}\n{stderr}")


class ArchiveError(AabconvError):
    """Raised when a ZIP container cannot be read or extracted."""

    pass


class PayloadNotFoundError(AabconvError):
    """Raised when an expected APK is missing from an extracted container."""

    pass


class ConversionError(AabconvError):
    """Raised when a conversion step fails."""

    pass
