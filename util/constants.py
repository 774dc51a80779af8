from typing import Final, Tuple

EXIT_SENTINEL: Final[str] = "exit"
PROMPT: Final[str] = "> "

# Coarsest first; the trailing "" falls back to character-level splitting.
DEFAULT_SEPARATORS: Final[Tuple[str, ...]] = ("\n\n", "\n", " ", "")

CONTEXT_JOINER: Final[str] = "\n\n"


class OllamaURIs:
    EMBED = "/api/embed"
    CHAT = "/api/chat"
