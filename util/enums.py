# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    INVALID_REQUEST = ErrorInfo("Invalid request", status.HTTP_400_BAD_REQUEST)
    NO_REVIEWERS = ErrorInfo(
        "No active reviewers configured", status.HTTP_400_BAD_REQUEST
    )
    DOCUMENT_NOT_FOUND = ErrorInfo("Document not found", status.HTTP_404_NOT_FOUND)
    EXTRACTION_NOT_FOUND = ErrorInfo(
        "Extraction not found", status.HTTP_404_NOT_FOUND
    )
    UNREADABLE_PDF = ErrorInfo(
        "PDF could not be parsed", status.HTTP_422_UNPROCESSABLE_ENTITY
    )
    INTERNAL_ERROR = ErrorInfo("Internal Error", status.HTTP_502_BAD_GATEWAY)
