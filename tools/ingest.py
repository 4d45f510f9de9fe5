from pathlib import Path
from typing import Dict, List, Any

from loguru import logger

DELIMITER = "---"
MAX_CHUNK_CHARS = 1000


def cap_chunk(chunk: str, max_chars: int = MAX_CHUNK_CHARS) -> List[str]:
    """Break a chunk longer than max_chars on line boundaries, hard-splitting overlong lines."""
    if len(chunk) <= max_chars:
        return [chunk]

    units: List[str] = []
    for line in chunk.splitlines():
        units.extend(line[i:i + max_chars] for i in range(0, max(len(line), 1), max_chars))

    pieces: List[str] = []
    current = ""
    for unit in units:
        joined = f"{current}\n{unit}" if current else unit
        if len(joined) <= max_chars:
            current = joined
        else:
            pieces.append(current)
            current = unit
    pieces.append(current)

    return [p.strip() for p in pieces if p.strip()]


def split_markdown(text: str, delimiter: str = DELIMITER, max_chars: int = MAX_CHUNK_CHARS) -> List[str]:
    """Split markdown on delimiter lines, cap chunk size and drop empty chunks."""
    if max_chars < 1:
        raise ValueError(f"max_chars must be at least 1, got {max_chars}")

    sections: List[str] = []
    current: List[str] = []

    for line in text.splitlines():
        if line.strip() == delimiter:
            sections.append("\n".join(current).strip())
            current = []
        else:
            current.append(line)
    sections.append("\n".join(current).strip())

    return [chunk for section in sections if section for chunk in cap_chunk(section, max_chars)]


async def load_markdown_to_store(path: str, store) -> int:
    """
    Seed the vector store from a markdown file of lead records.

    Args:
        path: Markdown file, one lead per ``---``-separated section
        store: Anything with ``add_documents`` (normally PineconeStore)

    Returns:
        Number of chunks stored
    """
    content = Path(path).read_text(encoding="utf-8")
    chunks = split_markdown(content)
    logger.info(f"Split {path} into {len(chunks)} chunks")

    docs: List[Dict[str, Any]] = [
        {"text": chunk, "metadata": {"source": path}} for chunk in chunks
    ]
    return await store.add_documents(docs)
