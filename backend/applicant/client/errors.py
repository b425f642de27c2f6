class CaptureError(RuntimeError):
    """Base for microphone/capture failures that end the current listening attempt."""

    user_message = "Could not start listening. Please try again."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.user_message)


class PermissionDenied(CaptureError):
    user_message = "Microphone access was denied. Please allow microphone access and try again."


class NoDevice(CaptureError):
    user_message = "No microphone was found. Please connect a microphone and try again."


class MicrophoneBusy(CaptureError):
    user_message = "The microphone is in use by another component."


class RecognizerError(RuntimeError):
    # Codes that only mean "nothing was said"; capture ignores them.
    SILENT_CODES = {"no-speech", "aborted"}

    def __init__(self, code: str, message: str = "", recoverable: bool = True):
        super().__init__(message or code)
        self.code = code
        self.recoverable = recoverable


class SynthesisSetupError(ValueError):
    pass


class ApiError(RuntimeError):
    def __init__(self, path: str, status_code: int, detail: str = ""):
        super().__init__(f"{path} returned {status_code}: {detail}".strip())
        self.path = path
        self.status_code = status_code
        self.detail = detail
