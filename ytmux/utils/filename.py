import os
import re
import unicodedata

RESERVED_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f\x7f]')
WHITESPACE = re.compile(r'\s+')

WINDOWS_RESERVED = {
    'CON', 'PRN', 'AUX', 'NUL',
    'COM1', 'COM2', 'COM3', 'COM4', 'COM5', 'COM6', 'COM7', 'COM8', 'COM9',
    'LPT1', 'LPT2', 'LPT3', 'LPT4', 'LPT5', 'LPT6', 'LPT7', 'LPT8', 'LPT9'
}

# Extensions replaced (not appended to) when the delivered container differs
MEDIA_EXTENSIONS = {
    'tmp', 'ts', 'mp4', 'm4a', 'm4v', 'webm', 'mkv', 'mov', 'flv', '3gp',
    'mp3', 'opus', 'ogg', 'aac', 'wav',
}


def sanitize_filename(name: str, fallback: str = "video", max_length: int = 200) -> str:
    """
    Sanitize a caller-supplied filename for cross-platform compatibility.
    Path separators, reserved and control characters are stripped,
    whitespace collapsed. Never returns an empty string.
    """
    name = unicodedata.normalize("NFKC", name or "")
    name = RESERVED_CHARS.sub('', name)
    name = WHITESPACE.sub(' ', name).strip(' .')

    if name.split('.', 1)[0].upper() in WINDOWS_RESERVED:
        name = f"_{name}"

    name = name[:max_length].strip(' .')
    return name or fallback


def with_extension(name: str, container: str) -> str:
    """Make name end in .<container>, replacing a media extension it already has"""
    root, ext = os.path.splitext(name)
    if ext.lower().lstrip('.') in MEDIA_EXTENSIONS and root:
        name = root
    return f"{name}.{container}"
