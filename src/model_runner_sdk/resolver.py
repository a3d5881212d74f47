"""Resolve user-supplied model identifiers to canonical model IDs."""

from typing import Callable, Iterable

from model_runner_sdk.errors import UnknownModelIdentifierError
from model_runner_sdk.schemas import Model

DIGEST_PREFIX = "sha256:"
SHORT_ID_START = len(DIGEST_PREFIX)
SHORT_ID_LENGTH = 12

CatalogFetch = Callable[[], Iterable[Model]]
Matcher = Callable[[Model, str], bool]


def is_canonical_reference(token: str) -> bool:
    """Return whether a token is a repository reference rather than an ID."""
    return "/" in token.strip("/")


def matches_full_id(model: Model, token: str) -> bool:
    return model.id == token


def matches_digest(model: Model, token: str) -> bool:
    return model.id.removeprefix(DIGEST_PREFIX) == token


def matches_short_id(model: Model, token: str) -> bool:
    return model.id[SHORT_ID_START : SHORT_ID_START + SHORT_ID_LENGTH] == token


MATCHERS: tuple[Matcher, ...] = (matches_full_id, matches_digest, matches_short_id)


def find_model_id(catalog: Iterable[Model], token: str, matchers: Iterable[Matcher] = MATCHERS) -> str | None:
    """Return the ID of the first catalog entry any matcher accepts, if any."""
    matchers = tuple(matchers)
    for model in catalog:
        if any(matcher(model, token) for matcher in matchers):
            return model.id
    return None



def resolve_model_id(token: str, fetch_catalog: CatalogFetch) -> str:
    """Expand a short ID or digest to the canonical model ID.

    Repository references are returned as is without querying the runner.
    Otherwise the catalog is fetched once per call and never cached, since
    models may be pulled or removed between calls.

    Args:
        token: User-supplied model identifier.
        fetch_catalog: Callable returning the current model listing.

    Returns:
        The canonical model identifier.

    Raises:
        UnknownModelIdentifierError: If no model matches the token.
    """
    if is_canonical_reference(token):
        return token

    if (model_id := find_model_id(fetch_catalog(), token)) is None:
        raise UnknownModelIdentifierError(token)
    return model_id
