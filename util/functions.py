# util/functions.py
def clip_words(text: str, max_words: int = 100) -> str:
    """
    - Trim 'text' to at most `max_words` tokens separated by whitespace.
    - Adds an ellipsis when trimming occurs.
    """
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + " …"


def one_line(text: str) -> str:
    # Collapse whitespace runs so excerpts fit on a single console line.
    return " ".join(text.split())
