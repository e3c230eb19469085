import re
from pathlib import Path

TEXT_SUFFIXES = (".txt", ".md", ".markdown")


def load_text_file(file_path: str | Path) -> str:
    """Read a plain-text or markdown resume/requirements file and normalize it."""
    path = Path(file_path)
    if path.suffix.lower() not in TEXT_SUFFIXES:
        raise ValueError(
            f"Unsupported file format: {path.suffix} (expected one of {', '.join(TEXT_SUFFIXES)})"
        )
    return normalize_text(path.read_text(encoding="utf-8"))


def normalize_text(text: str) -> str:
    """Clean pasted resume text before it goes into the prompt.

    Handles: BOM and zero-width characters, decorative bullet glyphs,
    runs of spaces/tabs, and long stretches of blank lines.
    """
    # 1. Invisible characters left by word processors and web copy-paste
    text = text.lstrip("\ufeff")
    text = re.sub(r"[\u200b\u200c\u200d\u00ad\u2060\ufeff]", "", text)

    # 2. Decorative bullets (●, •, ◦, ◆, ■, ▪, ★, ○) → markdown dash
    text = re.sub(r"^(\s*)[●•◦◆■▪★○]\s*", r"\1- ", text, flags=re.MULTILINE)

    # 3. Collapse inner whitespace, keep indentation
    lines = []
    for line in text.splitlines():
        body = line.lstrip()
        indent = line[: len(line) - len(body)].replace("\t", "    ")
        body = re.sub(r"[ \t]{2,}", " ", body).rstrip()
        lines.append(f"{indent}{body}" if body else "")
    text = "\n".join(lines)

    # 4. At most one blank line between paragraphs
    text = re.sub(r"\n{3,}", "\n\n", text)

    return text.strip()
