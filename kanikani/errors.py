class KanikaniError(Exception):
    """Base class for failures coming from a collaborator (network, data)."""


class TransportError(KanikaniError):
    """The WaniKani API or an asset host could not be reached or refused the request."""


class AuthenticationError(TransportError):
    """The API token was rejected."""


class DecodeError(KanikaniError):
    """A response or asset could not be parsed into the expected shape."""
