from dataclasses import dataclass


@dataclass
class VideoInfo:
    video_id: str
    creator_name: str
    creator_handle: str
    title: str
    audio_path: str
