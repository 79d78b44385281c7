"""Pick the active provider and model at startup."""

from __future__ import annotations

import logging
from dataclasses import replace

from chatterm.api.client import ServiceClient
from chatterm.api.errors import ChatError, NoModelSelectedError, NoProvidersError, ProviderListError
from chatterm.api.result import Failure
from chatterm.api.schema import Model, Provider, ProviderList
from chatterm.app.commands import Cmd
from chatterm.app.messages import ErrorToast, ModelSelected
from chatterm.log_utils import log_event
from chatterm.state import ClientState

logger = logging.getLogger(__name__)

PREFERRED_PROVIDER = "anthropic"


def default_model_for(provider: Provider, defaults: dict[str, str]) -> Model | None:
    """Server-declared default model, else the lexicographically first model id."""
    match = defaults.get(provider.id)
    if match is not None and match in provider.models:
        return provider.models[match]
    if not provider.models:
        return None
    return provider.models[min(provider.models)]


def _persisted_pair(providers: list[Provider], state: ClientState) -> tuple[Provider, Model] | None:
    provider = next((p for p in providers if p.id == state.provider), None)
    if provider is None:
        return None
    model = next((m for m in provider.models.values() if m.id == state.model), None)
    if model is None:
        return None
    return provider, model


def resolve_default(provider_list: ProviderList, state: ClientState) -> tuple[Provider, Model]:
    """Resolve the (provider, model) pair to use.

    The persisted selection wins only when both its provider and its model
    still exist. Otherwise the default is `anthropic` when present, else the
    first provider (in service order) that has a model.
    """
    providers = provider_list.providers
    if not providers:
        raise NoProvidersError()

    default_provider: Provider | None = None
    default_model: Model | None = None

    preferred = next((p for p in providers if p.id == PREFERRED_PROVIDER), None)
    if preferred is not None:
        default_provider = preferred
        default_model = default_model_for(preferred, provider_list.default)

    if default_model is None:
        for provider in providers:
            model = default_model_for(provider, provider_list.default)
            if model is not None:
                default_provider, default_model = provider, model
                break

    persisted = _persisted_pair(providers, state)
    if persisted is not None:
        return persisted

    if default_provider is None or default_model is None:
        raise NoModelSelectedError()

    if state.provider or state.model:
        log_event(
            logger,
            "provider.reconcile.fallback",
            persisted_provider=state.provider,
            persisted_model=state.model,
            provider=default_provider.id,
            model=default_model.id,
        )
    return default_provider, default_model


def initialize_provider(client: ServiceClient, state: ClientState) -> Cmd:
    """Command resolving the active model; yields one ModelSelected or ErrorToast."""
    snapshot = replace(state)

    async def _initialize_provider():
        result = await client.list_providers()
        try:
            if isinstance(result, Failure):
                raise ProviderListError(result.error)
            provider, model = resolve_default(result.unwrap(), snapshot)
        except ChatError as exc:
            log_event(logger, "provider.resolve.failed", level=logging.ERROR, error=str(exc))
            return ErrorToast(str(exc))
        log_event(logger, "provider.resolved", provider=provider.id, model=model.id)
        return ModelSelected(provider=provider, model=model)

    return _initialize_provider
