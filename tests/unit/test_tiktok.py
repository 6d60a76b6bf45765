from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yt_dlp

from sdr.services.errors import AudioUnavailableError, FetchFailedError
from sdr.services.tiktok import TikTokService, extract_video_id, validate_url


VIDEO_URL = "https://www.tiktok.com/@producer/video/7234567890123456789"
VIDEO_INFO = {
    "id": "7234567890123456789",
    "title": "How to make a reese bass",
    "uploader": "Producer Name",
    "uploader_id": "@producer",
}


class TestValidateURL:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.tiktok.com/@producer/video/7234567890123456789",
            "http://tiktok.com/@some.user-name/video/123",
            "https://www.tiktok.com/@producer/video/123?is_from_webapp=1",
            "https://vm.tiktok.com/ZMabc123/",
            "http://vm.tiktok.com/ZM8x",
            "https://www.tiktok.com/t/ZTRabc123/",
            "https://tiktok.com/t/ZT8x",
        ],
    )
    def test_accepts_known_shapes(self, url: str) -> None:
        assert validate_url(url) is True

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.tiktok.com/@producer/video/abc",
            "https://www.tiktok.com/producer/video/123",
            "https://www.tiktok.com/@producer",
            "https://m.tiktok.com/@producer/video/123",
            "https://www.tiktok.com.evil.com/@producer/video/123",
            "https://vm.tiktok.com/",
            "ftp://vm.tiktok.com/ZMabc123",
            "https://www.tiktok.com/t/",
            "https://tiktok.com/x/ZTRabc123",
            "https://example.com/?u=https://www.tiktok.com/@producer/video/123",
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "",
        ],
    )
    def test_rejects_near_misses(self, url: str) -> None:
        assert validate_url(url) is False

    def test_rejects_non_strings(self) -> None:
        assert validate_url(None) is False  # type: ignore[arg-type]


class TestExtractVideoID:
    def test_direct_url(self) -> None:
        assert extract_video_id(VIDEO_URL) == "7234567890123456789"

    def test_short_link_needs_downloader(self) -> None:
        assert extract_video_id("https://vm.tiktok.com/ZMabc123/") is None


def _mock_youtube_dl(ydl: MagicMock) -> MagicMock:
    youtube_dl_cls = MagicMock()
    youtube_dl_cls.return_value.__enter__.return_value = ydl
    return youtube_dl_cls


class TestExtractAudio:
    def test_returns_video_info(self, tmp_path: Path) -> None:
        service = TikTokService(tmp_path)
        ydl = MagicMock()
        ydl.extract_info.return_value = dict(VIDEO_INFO)
        ydl.download.side_effect = lambda urls: (tmp_path / "7234567890123456789.mp3").write_bytes(b"mp3")
        youtube_dl_cls = _mock_youtube_dl(ydl)

        with patch("sdr.services.tiktok.yt_dlp.YoutubeDL", youtube_dl_cls):
            info = service.extract_audio(VIDEO_URL)

        assert info.video_id == "7234567890123456789"
        assert info.creator_handle == "producer"
        assert info.creator_name == "Producer Name"
        assert info.title == "How to make a reese bass"
        assert info.audio_path == str(tmp_path / "7234567890123456789.mp3")

        ydl.extract_info.assert_called_once_with(VIDEO_URL, download=False)
        ydl.download.assert_called_once_with([VIDEO_URL])
        metadata_opts = youtube_dl_cls.call_args_list[0].args[0]
        download_opts = youtube_dl_cls.call_args_list[1].args[0]
        assert metadata_opts["skip_download"] is True
        assert download_opts["postprocessors"][0]["preferredcodec"] == "mp3"
        assert download_opts["outtmpl"] == str(tmp_path / "%(id)s.%(ext)s")

    def test_handle_without_marker_is_kept(self, tmp_path: Path) -> None:
        service = TikTokService(tmp_path)
        ydl = MagicMock()
        ydl.extract_info.return_value = {**VIDEO_INFO, "uploader_id": "producer"}
        ydl.download.side_effect = lambda urls: (tmp_path / "7234567890123456789.mp3").write_bytes(b"mp3")

        with patch("sdr.services.tiktok.yt_dlp.YoutubeDL", _mock_youtube_dl(ydl)):
            info = service.extract_audio(VIDEO_URL)

        assert info.creator_handle == "producer"

    def test_metadata_failure(self, tmp_path: Path) -> None:
        service = TikTokService(tmp_path)
        ydl = MagicMock()
        ydl.extract_info.side_effect = yt_dlp.utils.DownloadError("Video unavailable")

        with patch("sdr.services.tiktok.yt_dlp.YoutubeDL", _mock_youtube_dl(ydl)):
            with pytest.raises(FetchFailedError):
                service.extract_audio(VIDEO_URL)

        ydl.download.assert_not_called()

    def test_malformed_metadata(self, tmp_path: Path) -> None:
        service = TikTokService(tmp_path)
        ydl = MagicMock()
        ydl.extract_info.return_value = {"title": "no id here"}

        with patch("sdr.services.tiktok.yt_dlp.YoutubeDL", _mock_youtube_dl(ydl)):
            with pytest.raises(FetchFailedError) as exc_info:
                service.extract_audio(VIDEO_URL)

        assert "Malformed" in str(exc_info.value)

    def test_download_failure_cleans_partial_files(self, tmp_path: Path) -> None:
        service = TikTokService(tmp_path)
        ydl = MagicMock()
        ydl.extract_info.return_value = dict(VIDEO_INFO)

        def failing_download(urls):
            (tmp_path / "7234567890123456789.webm.part").write_bytes(b"partial")
            raise yt_dlp.utils.DownloadError("ffmpeg not found")

        ydl.download.side_effect = failing_download

        with patch("sdr.services.tiktok.yt_dlp.YoutubeDL", _mock_youtube_dl(ydl)):
            with pytest.raises(AudioUnavailableError):
                service.extract_audio(VIDEO_URL)

        assert list(tmp_path.iterdir()) == []

    def test_missing_output_file(self, tmp_path: Path) -> None:
        service = TikTokService(tmp_path)
        ydl = MagicMock()
        ydl.extract_info.return_value = dict(VIDEO_INFO)
        ydl.download.return_value = 0

        with patch("sdr.services.tiktok.yt_dlp.YoutubeDL", _mock_youtube_dl(ydl)):
            with pytest.raises(AudioUnavailableError):
                service.extract_audio(VIDEO_URL)


class TestCleanup:
    def test_removes_only_files_of_the_video(self, tmp_path: Path) -> None:
        service = TikTokService(tmp_path)
        (tmp_path / "123.mp3").write_bytes(b"a")
        (tmp_path / "123.webm").write_bytes(b"b")
        (tmp_path / "1234.mp3").write_bytes(b"c")

        service.cleanup("123")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["1234.mp3"]

    def test_missing_files_are_ignored(self, tmp_path: Path) -> None:
        service = TikTokService(tmp_path)
        service.cleanup("does-not-exist")
        service.cleanup(None)
