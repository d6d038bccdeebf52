from typing import Callable


# Flow: pipeline stages report (progress 0-100, message) through this callback.
ProgressReporter = Callable[[int, str], None]


def no_progress(progress: int, message: str) -> None:
    return None
