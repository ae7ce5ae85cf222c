"""Exceptions raised by the generation core.

None of these is fatal to the process: the orchestrator contains them per item
or per invocation and reports them through counters.
"""


class ProviderError(RuntimeError):
    """The generation provider rejected or failed a request."""


class TransientProviderError(ProviderError):
    """Network, timeout, rate-limit or server-side failure; the next trigger may succeed."""


class ExtractionError(ValueError):
    """A provider payload or stored file does not hold a valid story."""


class StoryNotFound(LookupError):
    """No story has been generated yet for the requested date, language and level."""


class InvalidIdentifier(ValueError):
    """A batch sub-result carries a malformed composite identifier."""
