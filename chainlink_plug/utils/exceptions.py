"""
Exception hierarchy for the chainlink-plug deployment toolkit

Every pipeline stage raises a subclass of ChainlinkPlugError. The CLI
catches them at the top level and turns them into exit code 1.
"""

from typing import Any, Dict, Optional


class ErrorCodes:
    """Numeric error codes grouped by stage"""
    # Configuration (1xxx)
    CONFIG_MISSING_KEYS = 1001
    CONFIG_INVALID_VALUE = 1002
    CONFIG_FILE_NOT_FOUND = 1003

    # External commands (2xxx)
    COMMAND_FAILED = 2001
    COMMAND_NOT_FOUND = 2002

    # Deployment (3xxx)
    ADDRESS_NOT_FOUND = 3001
    ADDRESS_MALFORMED = 3002
    ENV_WRITE_FAILED = 3003

    # Transactions (4xxx)
    TRANSACTION_FAILED = 4001
    TRANSACTION_REVERTED = 4002

    # Explorer API (5xxx)
    EXPLORER_HTTP_ERROR = 5001
    EXPLORER_API_ERROR = 5002
    EXPLORER_NO_RESULT = 5003

    # Service registration (6xxx)
    REGISTRATION_FAILED = 6001


class ChainlinkPlugError(Exception):
    """Base exception class for the deployment toolkit"""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.code is not None:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(ChainlinkPlugError):
    """Missing or invalid configuration"""

    def __init__(self, message: str, missing=None, config_file: str = None, **kwargs):
        details = kwargs.pop("details", {})
        if missing:
            details["missing"] = list(missing)
        if config_file:
            details["config_file"] = config_file
        kwargs.setdefault("code", ErrorCodes.CONFIG_MISSING_KEYS if missing else None)
        super().__init__(message, details=details, **kwargs)

    @property
    def missing(self):
        return self.details.get("missing", [])


class CommandError(ChainlinkPlugError):
    """External command exited with a non-zero status"""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        **kwargs
    ):
        kwargs.setdefault("code", ErrorCodes.COMMAND_FAILED)
        super().__init__(message, details={"returncode": returncode}, **kwargs)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class DeploymentError(ChainlinkPlugError):
    """Contract deployment did not produce a usable address"""
    pass


class TransactionError(ChainlinkPlugError):
    """Transaction could not be built, sent or confirmed"""

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        from_address: Optional[str] = None,
        to_address: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault("code", ErrorCodes.TRANSACTION_FAILED)
        details = {
            "tx_hash": tx_hash,
            "from_address": from_address,
            "to_address": to_address,
        }
        super().__init__(message, details=details, **kwargs)
        self.tx_hash = tx_hash


class ExplorerError(ChainlinkPlugError):
    """Block explorer API request failed"""
    pass


class RegistrationError(ChainlinkPlugError):
    """A service registration sequence was aborted"""

    def __init__(self, message: str, service: str, **kwargs):
        kwargs.setdefault("code", ErrorCodes.REGISTRATION_FAILED)
        details = dict(kwargs.pop("details", None) or {}, service=service)
        super().__init__(message, details=details, **kwargs)
        self.service = service
