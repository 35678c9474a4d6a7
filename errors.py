"""Shared error codes, user-facing messages and exception types."""

from __future__ import annotations

PERMISSION_DENIED = "PERMISSION_DENIED"
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"
INFERENCE_PROTOCOL_ERROR = "INFERENCE_PROTOCOL_ERROR"
INPUT_INVALID = "INPUT_INVALID"
NO_WORDS_FOUND = "NO_WORDS_FOUND"
STORAGE_FAILED = "STORAGE_FAILED"
CORRUPT_STORE = "CORRUPT_STORE"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Cannot access microphone. You can still type your answer.",
    NETWORK_ERROR: "Network failed, please retry.",
    AUTH_FAILED: "API key is invalid or missing.",
    INFERENCE_PROTOCOL_ERROR: "Something went wrong while processing.",
    INPUT_INVALID: "Please check your input.",
    NO_WORDS_FOUND: "No words found. Please check your input and try again.",
    STORAGE_FAILED: "Could not save your library to disk.",
    CORRUPT_STORE: "Saved library was unreadable; a backup was kept and a new library started.",
}


def user_message(code: str) -> str:
    return ERROR_MESSAGES.get(code, ERROR_MESSAGES[INFERENCE_PROTOCOL_ERROR])


class VocabError(Exception):
    code = INFERENCE_PROTOCOL_ERROR

    def __init__(self, message: str = "", code: str | None = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(message or user_message(self.code))


class InputValidationError(VocabError):
    code = INPUT_INVALID


class PersistenceError(VocabError):
    code = STORAGE_FAILED
