from video_studio.models.job import VideoJob

__all__ = ["VideoJob"]
