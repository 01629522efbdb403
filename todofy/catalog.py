"""
Static catalog of the models the summarizer knows about.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from .models import Model, ModelDescriptor, ModelFamily

DEFAULT_TOKEN_LIMIT = 1048576

DEFAULT_MODELS: List[ModelDescriptor] = [
    ModelDescriptor(id=Model.GEMINI_2_5_PRO, provider_name="gemini-2.5-pro", max_input_tokens=DEFAULT_TOKEN_LIMIT),
    ModelDescriptor(id=Model.GEMINI_2_5_FLASH, provider_name="gemini-2.5-flash", max_input_tokens=DEFAULT_TOKEN_LIMIT),
    ModelDescriptor(
        id=Model.GEMINI_2_5_FLASH_LITE,
        provider_name="gemini-2.5-flash-lite",
        max_input_tokens=DEFAULT_TOKEN_LIMIT,
    ),
    ModelDescriptor(
        id=Model.GEMINI_3_FLASH_PREVIEW,
        provider_name="gemini-3-flash-preview",
        max_input_tokens=DEFAULT_TOKEN_LIMIT,
    ),
    ModelDescriptor(id=Model.GEMINI_2_0_FLASH, provider_name="gemini-2.0-flash", max_input_tokens=DEFAULT_TOKEN_LIMIT),
    ModelDescriptor(
        id=Model.GEMINI_2_0_FLASH_LITE,
        provider_name="gemini-2.0-flash-lite",
        max_input_tokens=DEFAULT_TOKEN_LIMIT,
    ),
]

# Cheapest first. Pro and the 2.0 models are only used when asked for by name.
DEFAULT_PRIORITY: List[Model] = [
    Model.GEMINI_2_5_FLASH_LITE,
    Model.GEMINI_2_5_FLASH,
    Model.GEMINI_3_FLASH_PREVIEW,
]

SUPPORTED_FAMILIES = frozenset({ModelFamily.GEMINI})


class ModelCatalog:
    """
    Read-only lookup from abstract model ids to provider names, plus the
    fallback order used when no model is requested.
    """

    def __init__(
        self,
        descriptors: Iterable[ModelDescriptor] = DEFAULT_MODELS,
        priority: Iterable[Model] = DEFAULT_PRIORITY,
        families: Iterable[ModelFamily] = SUPPORTED_FAMILIES,
    ):
        self._descriptors: Dict[Model, ModelDescriptor] = {}
        for d in descriptors:
            if d.id in self._descriptors:
                raise ValueError(f"duplicate model in catalog: {d.id.value}")
            self._descriptors[d.id] = d

        order = list(priority)
        if len(set(order)) != len(order):
            raise ValueError("model priority must not contain duplicates")
        self._priority: Tuple[Model, ...] = tuple(order)
        self._families = frozenset(families)

    def name_for(self, model: Model) -> Tuple[str, bool]:
        d = self._descriptors.get(model)
        if d is None:
            return "", False
        return d.provider_name, True

    def descriptor(self, model: Model) -> Optional[ModelDescriptor]:
        return self._descriptors.get(model)

    def preference_order(self) -> List[Model]:
        return list(self._priority)

    def is_family_supported(self, family: ModelFamily) -> bool:
        return family in self._families

    def descriptors(self) -> List[ModelDescriptor]:
        return list(self._descriptors.values())

    def __contains__(self, model: object) -> bool:
        return model in self._descriptors
