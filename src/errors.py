# errors.py - Failure kinds raised while building or running a variant


class ExperimentError(RuntimeError):
    """Base class: aborts the current variant only."""

    def __init__(self, message, variant=None, parameter=None):
        super().__init__(message)
        self.variant = variant
        self.parameter = parameter

    def __str__(self):
        text = super().__str__()
        details = []
        if self.variant is not None:
            details.append(f"variant={self.variant}")
        if self.parameter is not None:
            details.append(f"parameter={self.parameter}")
        if details:
            return f"{text} ({', '.join(details)})"
        return text


class InvalidVariant(ExperimentError):
    """Unrecognized variant name."""


class InvalidSchedule(ExperimentError):
    """A computed start/stop time or scenario parameter is out of range."""


class EngineFailure(ExperimentError):
    """The packet-delivery engine cannot carry out a request."""
