from __future__ import annotations

import glob
import logging
import re
from pathlib import Path

import yt_dlp

from .errors import AudioUnavailableError, FetchFailedError
from .types import VideoInfo

logger = logging.getLogger(__name__)

TIKTOK_URL_PATTERNS = (
    re.compile(r"^https?://(www\.)?tiktok\.com/@[\w.-]+/video/\d+"),
    re.compile(r"^https?://vm\.tiktok\.com/\w+"),
    re.compile(r"^https?://(www\.)?tiktok\.com/t/\w+"),
)
VIDEO_ID_PATTERN = re.compile(r"/video/(\d+)")
AUDIO_FORMAT = "mp3"


def validate_url(url: str) -> bool:
    if not isinstance(url, str):
        return False
    return any(pattern.match(url) for pattern in TIKTOK_URL_PATTERNS)


def extract_video_id(url: str) -> str | None:
    """Video ID of a direct URL. Short links only resolve through the downloader."""
    match = VIDEO_ID_PATTERN.search(url)
    return match.group(1) if match else None


def _clean_string(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _create_ydl_options(download: bool = False, outtmpl: str | None = None) -> dict:
    base_opts = {
        "quiet": True,
        "noprogress": True,
        "no_warnings": True,
    }

    if not download:
        base_opts["skip_download"] = True
        return base_opts

    base_opts["format"] = "bestaudio/best"
    base_opts["postprocessors"] = [{
        "key": "FFmpegExtractAudio",
        "preferredcodec": AUDIO_FORMAT,
        "preferredquality": "0",
    }]
    if outtmpl:
        base_opts["outtmpl"] = outtmpl
    return base_opts


class TikTokService:
    def __init__(self, download_dir: str | Path):
        self.download_dir = Path(download_dir)
        self.download_dir.mkdir(parents=True, exist_ok=True)

    def audio_path_for(self, video_id: str) -> Path:
        return self.download_dir / f"{video_id}.{AUDIO_FORMAT}"

    def _fetch_metadata(self, url: str) -> dict:
        try:
            with yt_dlp.YoutubeDL(_create_ydl_options()) as ydl:
                info = ydl.extract_info(url, download=False)
        except yt_dlp.utils.DownloadError as error:
            raise FetchFailedError(f"Failed to get video info: {error}") from error
        except (ConnectionError, TimeoutError) as error:
            raise FetchFailedError(f"Network error getting video info: {error}") from error

        if not isinstance(info, dict) or not _clean_string(info.get("id")):
            raise FetchFailedError(f"Malformed video info for {url}")
        return info

    def _download_audio(self, url: str, video_id: str) -> Path:
        opts = _create_ydl_options(
            download=True,
            outtmpl=str(self.download_dir / "%(id)s.%(ext)s"),
        )
        try:
            with yt_dlp.YoutubeDL(opts) as ydl:
                ydl.download([url])
        except yt_dlp.utils.DownloadError as error:
            raise AudioUnavailableError(f"Failed to download audio: {error}") from error
        except (ConnectionError, TimeoutError) as error:
            raise AudioUnavailableError(f"Network error downloading audio: {error}") from error

        audio_path = self.audio_path_for(video_id)
        if not audio_path.exists():
            raise AudioUnavailableError(f"Audio file missing after download: {audio_path}")
        return audio_path

    def extract_audio(self, url: str) -> VideoInfo:
        info = self._fetch_metadata(url)
        video_id = _clean_string(info.get("id"))

        try:
            audio_path = self._download_audio(url, video_id)
        except AudioUnavailableError:
            self.cleanup(video_id)
            raise

        handle = (_clean_string(info.get("uploader_id")) or _clean_string(info.get("uploader")) or "").removeprefix("@")
        if not handle:
            self.cleanup(video_id)
            raise FetchFailedError(f"Video info has no uploader for {url}")

        return VideoInfo(
            video_id=video_id,
            creator_name=_clean_string(info.get("uploader")) or handle,
            creator_handle=handle,
            title=_clean_string(info.get("title")) or "",
            audio_path=str(audio_path),
        )

    def cleanup(self, video_id: str | None) -> None:
        if not video_id:
            return
        for path in self.download_dir.glob(f"{glob.escape(video_id)}.*"):
            try:
                path.unlink()
            except OSError as error:
                logger.debug("cleanup.skip path=%s error=%s", path, error)
