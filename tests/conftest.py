import json
import os
import stat
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from ytmux.config.settings import config
from ytmux.models.internal import Catalog, MediaFormat
from ytmux.services.catalog import normalize_format

FAKE_YTDLP = """\
import json, os, sys
cfg = json.load(open(os.environ["FAKE_TOOLS_CONFIG"]))
args = sys.argv[1:]
with open(cfg["log"], "a") as log:
    log.write(json.dumps({"tool": "yt-dlp", "args": args}) + "\\n")
if "--dump-single-json" in args:
    if cfg.get("info_exit"):
        sys.stderr.write("ERROR: extractor exploded\\n")
        sys.exit(cfg["info_exit"])
    sys.stdout.write(cfg.get("info_raw") or json.dumps(cfg["info"]))
    sys.exit(0)
if "--version" in args:
    print("2099.01.01")
    sys.exit(0)
fmt = args[args.index("--format") + 1]
out = args[args.index("--output") + 1]
if fmt in cfg.get("fail", []):
    sys.stderr.write("ERROR: fetch failed\\n")
    sys.exit(1)
with open(out, "wb") as f:
    f.write(("<%s>" % fmt).encode() * 64)
"""

FAKE_FFMPEG = """\
import json, os, sys
cfg = json.load(open(os.environ["FAKE_TOOLS_CONFIG"]))
args = sys.argv[1:]
with open(cfg["log"], "a") as log:
    log.write(json.dumps({"tool": "ffmpeg", "args": args}) + "\\n")
if cfg.get("mux_exit"):
    sys.exit(cfg["mux_exit"])
inputs = [args[i + 1] for i, a in enumerate(args) if a == "-i"]
with open(args[-1], "wb") as out:
    for path in inputs:
        with open(path, "rb") as f:
            out.write(f.read())
"""


def raw_format(format_id: str, **overrides: Any) -> Dict[str, Any]:
    """yt-dlp style format dict"""
    data: Dict[str, Any] = {
        "format_id": format_id,
        "ext": "mp4",
        "vcodec": "avc1.640028",
        "acodec": "mp4a.40.2",
        "filesize": 1_000_000,
        "height": 720,
    }
    data.update(overrides)
    return data


# Typical YouTube-like catalog: storyboard, audio, video-only, combined
SAMPLE_INFO = {
    "title": "Sample Clip",
    "formats": [
        raw_format("sb0", ext="mhtml", vcodec="none", acodec="none", height=None, filesize=None),
        raw_format("140", ext="m4a", vcodec="none", acodec="mp4a.40.2", height=None, filesize=3_000_000, abr=129.5),
        raw_format("251", ext="webm", vcodec="none", acodec="opus", height=None, filesize=3_500_000, abr=160.0),
        raw_format("137", vcodec="avc1.640028", acodec="none", height=1080, filesize=90_000_000),
        raw_format("22", height=720, filesize=40_000_000),
    ],
}


def make_catalog(info: Optional[Dict[str, Any]] = None) -> Catalog:
    info = info or SAMPLE_INFO
    return Catalog(title=info["title"], formats=[normalize_format(f) for f in info["formats"]])


def make_format(format_id: str, **overrides: Any) -> MediaFormat:
    return normalize_format(raw_format(format_id, **overrides))


class FakeTools:
    """Scriptable stand-ins for the yt-dlp and ffmpeg executables"""

    def __init__(self, root: Path):
        self.root = root
        self.config_path = root / "fake_tools.json"
        self.log_path = root / "fake_tools.log"
        self.ytdlp = self._write_script("yt-dlp", FAKE_YTDLP)
        self.ffmpeg = self._write_script("ffmpeg", FAKE_FFMPEG)
        self.configure()

    def _write_script(self, name: str, body: str) -> Path:
        path = self.root / name
        path.write_text(f"#!{sys.executable}\n{body}")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    def configure(self, **settings: Any) -> None:
        data = {"info": SAMPLE_INFO, "log": str(self.log_path)}
        data.update(settings)
        self.config_path.write_text(json.dumps(data))

    def calls(self, tool: str) -> List[List[str]]:
        if not self.log_path.exists():
            return []
        entries = [json.loads(line) for line in self.log_path.read_text().splitlines() if line]
        return [entry["args"] for entry in entries if entry["tool"] == tool]

    def fetched_formats(self) -> List[str]:
        return [args[args.index("--format") + 1] for args in self.calls("yt-dlp") if "--format" in args]


@pytest.fixture
def work_dir(tmp_path, monkeypatch) -> Path:
    path = tmp_path / "work"
    monkeypatch.setattr(config.download, "work_dir", str(path))
    return path


@pytest.fixture
def fake_tools(tmp_path, monkeypatch, work_dir) -> FakeTools:
    tools_root = tmp_path / "bin"
    tools_root.mkdir()
    tools = FakeTools(tools_root)
    monkeypatch.setenv("FAKE_TOOLS_CONFIG", str(tools.config_path))
    monkeypatch.setattr(config.ytdlp, "binary", str(tools.ytdlp))
    monkeypatch.setattr(config.ffmpeg, "binary", str(tools.ffmpeg))
    return tools


def leftover_files(path: Path) -> List[str]:
    if not path.exists():
        return []
    return sorted(os.listdir(path))
