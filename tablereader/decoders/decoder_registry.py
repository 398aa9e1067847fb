"""Decoder registry for explicit decoder registration and retrieval."""
from typing import Dict, Iterable, Optional, Type

from tablereader.decoders.base_decoder import Decoder
from tablereader.errors.exceptions import ConfigurationError, TableReaderError


# Registry mapping decoder tags to decoder classes
_decoder_registry: Dict[str, Type[Decoder]] = {}

# File suffixes and alternate spellings resolving to a registered tag
_decoder_aliases: Dict[str, str] = {}


def register_decoder(
    decoder_type: str,
    decoder_class: Type[Decoder],
    aliases: Iterable[str] = (),
) -> None:
    """Register a decoder class for a given format tag.

    Args:
        decoder_type: Unique identifier for the decoder (e.g., "csv")
        decoder_class: Decoder class that inherits from Decoder
        aliases: Extra names (typically file suffixes) for the same decoder

    Raises:
        ValueError: If decoder_type or an alias is already registered
        TypeError: If decoder_class does not inherit from Decoder
    """
    if not issubclass(decoder_class, Decoder):
        raise TypeError(
            f"Decoder class {decoder_class.__name__} must inherit from Decoder"
        )

    decoder_type = decoder_type.lower()
    if decoder_type in _decoder_registry:
        raise ValueError(
            f"Decoder type '{decoder_type}' is already registered. "
            f"Existing: {_decoder_registry[decoder_type].__name__}"
        )

    for alias in aliases:
        alias = alias.lower()
        if alias in _decoder_aliases and _decoder_aliases[alias] != decoder_type:
            raise ValueError(
                f"Alias '{alias}' already refers to decoder '{_decoder_aliases[alias]}'"
            )
        _decoder_aliases[alias] = decoder_type

    _decoder_registry[decoder_type] = decoder_class


def resolve_decoder_tag(name: str) -> str:
    """Map a tag or alias to its registered tag; unknown names pass through."""
    name = name.lower()
    return _decoder_aliases.get(name, name)


def get_decoder(decoder_type: str) -> Optional[Type[Decoder]]:
    """Get decoder class for a given tag or alias.

    Args:
        decoder_type: Decoder tag or alias (case-insensitive)

    Returns:
        Decoder class if found, None otherwise
    """
    return _decoder_registry.get(resolve_decoder_tag(decoder_type))


def create_decoder_instance(decoder_type: str, **kwargs) -> Decoder:
    """Create an instance of a decoder for a given tag.

    Args:
        decoder_type: Decoder tag or alias
        **kwargs: Arguments to pass to decoder constructor

    Returns:
        Decoder instance

    Raises:
        ConfigurationError: If the tag is not registered or the decoder
                            rejects its options
    """
    decoder_class = get_decoder(decoder_type)
    if decoder_class is None:
        available = ", ".join(_decoder_registry.keys()) if _decoder_registry else "none"
        raise ConfigurationError(
            f"Decoder type '{decoder_type}' is not registered. "
            f"Available decoders: {available}"
        )

    try:
        return decoder_class(**kwargs)
    except TableReaderError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to create decoder instance for '{decoder_type}': {e}"
        ) from e


def list_registered_decoders() -> list[str]:
    """List all registered decoder tags.

    Returns:
        List of registered decoder tag strings
    """
    return list(_decoder_registry.keys())
