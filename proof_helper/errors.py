"""Error taxonomy for the proof helper."""

from __future__ import annotations


class ProofHelperError(RuntimeError):
    """Base class for errors raised by the proof helper itself."""


class InputError(ProofHelperError):
    """The problem statement could not be obtained (no run is attempted)."""


class ConfigurationError(ProofHelperError):
    """A backend cannot be resolved or built (missing credential or model name)."""


class ProofCancelled(ProofHelperError):
    """Cancellation was requested before the next generation call."""
