class TrailError(Exception):
    """Base error for trail provider failures."""


class TransportError(TrailError):
    """Connection, DNS or timeout failure talking to a provider."""


class StatusError(TrailError):
    """Non-2xx response from a provider."""

    def __init__(self, provider, status, body):
        self.provider = provider
        self.status = status
        self.body = body
        super().__init__(f'{provider} request failed with status {status}: {body}')


class ParseError(TrailError):
    """Response body did not have the expected shape."""


class RateLimited(TrailError):
    """Provider kept answering 429 after all retries."""
