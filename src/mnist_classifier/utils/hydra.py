"""Hydra ConfigStore registration for trainable models."""

from __future__ import annotations

from typing import Any

from hydra.core.config_store import ConfigStore
from loguru import logger


def register(
    cls: type[Any] | None = None,
    *,
    group: str = "model",
    name: str | None = None,
    **defaults: Any,
) -> type[Any] | Any:
    """Register a class as a Hydra config node.

    The node's ``_target_`` points at the decorated class, so a defaults list
    entry such as ``model: conv_net`` followed by
    ``hydra.utils.instantiate(cfg.model)`` builds the class with *defaults*
    as keyword arguments.  Usable bare (``@register``) or with arguments.

    Arguments:
        cls: The class to register.
        group: ConfigStore group, ``"model"`` unless overridden.
        name: Config name.  Defaults to the lower-cased class name.
        **defaults: Constructor defaults stored on the node.
    """

    def _process_class(target_cls: type[Any]) -> type[Any]:
        config_name = name or target_cls.__name__.lower()
        node: dict[str, Any] = {
            "_target_": f"{target_cls.__module__}.{target_cls.__qualname__}"
        }
        node.update(defaults)

        logger.debug(
            f"Registering {target_cls.__name__} as '{group}/{config_name}'"
        )
        ConfigStore.instance().store(group=group, name=config_name, node=node)
        return target_cls

    if cls is None:
        return _process_class
    return _process_class(cls)
