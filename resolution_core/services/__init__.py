from .progress import progress_figure, progress_frame, summarize

__all__ = ["progress_figure", "progress_frame", "summarize"]
