"""Error taxonomy for the lead qualification pipeline."""


class LeadQualifierError(Exception):
    """Base class for every error raised by the qualifier."""


class MalformedExtraction(LeadQualifierError):
    """The filter extraction reply could not be parsed into a LeadFilter."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class RetrievalUnavailable(LeadQualifierError):
    """The vector store could not be queried."""


class PipelineTimeout(LeadQualifierError):
    """A pipeline run exceeded its deadline and was cancelled."""


class UnknownSpecialist(LeadQualifierError):
    """The router tried to hand off to a specialist it does not know."""
