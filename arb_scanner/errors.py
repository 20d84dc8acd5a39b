# arb_scanner/errors.py


class ArbScannerError(Exception):
    """Base class for every error raised by the scanner."""


class ConfigError(ArbScannerError):
    """Invalid or missing configuration value."""


class StorageError(ArbScannerError):
    """The opportunity database could not be read or written."""


class OpportunityValidationError(ArbScannerError):
    """Executability could not be determined for a candidate."""

    def __init__(self, pair: str, reason: str):
        super().__init__(f"{pair}: {reason}")
        self.pair = pair
        self.reason = reason


class FatalRunError(ArbScannerError):
    """The run cannot produce any result (e.g. no source returned pairs)."""
