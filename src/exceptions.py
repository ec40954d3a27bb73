# --- Custom Exception Classes ---
class RegimeError(Exception):
    """Base exception for regime selection and breath pacing."""
    pass


class ValidationError(RegimeError):
    """Regime parameters (pace or duration) are out of range."""
    pass


class InvalidArgument(RegimeError):
    """Unknown subject condition or unsupported training stage."""
    pass


class DataIntegrityError(RegimeError):
    """Stored regime data is inconsistent (e.g. a daily assignment that isn't 6 regimes long)."""
    pass


class NoViableRegimes(RegimeError):
    """The stage 3 search found no regimes to assign."""
    pass
