"""
Error taxonomy.

Every failure the core can produce is a subclass of one of two roots:
- `GeoError`: caller supplied out-of-domain geometry (coordinates, radius).
- `VerificationError`: the launch payload could not be trusted.

Each class carries a stable `code` string so API/CLI layers can map failures
to user-facing messages without string matching. All of them derive from
`ValueError` so generic "bad input" handlers keep working.
"""

from __future__ import annotations


class TreasureHuntError(ValueError):
    """Base class for all errors raised by the treasurehunt core."""

    code = "TREASUREHUNT_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_detail(self) -> dict[str, str]:
        """Return the `{"code", "message"}` payload used by the API layer."""
        return {"code": self.code, "message": self.message}


class GeoError(TreasureHuntError):
    code = "GEO_ERROR"


class InvalidCoordinate(GeoError):
    """Latitude/longitude outside [-90, 90] / [-180, 180] (or not finite)."""

    code = "INVALID_COORDINATE"


class InvalidRadius(GeoError):
    """Sampling radius that is zero, negative or not finite."""

    code = "INVALID_RADIUS"


class VerificationError(TreasureHuntError):
    code = "VERIFICATION_ERROR"


class MalformedPayload(VerificationError):
    code = "MALFORMED_PAYLOAD"


class MissingSecret(VerificationError):
    code = "MISSING_SECRET"


class SignatureMismatch(VerificationError):
    code = "SIGNATURE_MISMATCH"


class ExpiredPayload(VerificationError):
    code = "EXPIRED_PAYLOAD"


class IdentityMismatch(VerificationError):
    code = "IDENTITY_MISMATCH"
