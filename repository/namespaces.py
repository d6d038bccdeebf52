from typing import Final

ROOT: Final[str] = "studygen"

BLOBS: Final[str] = f"{ROOT}:blobs"  # raw uploaded bytes keyed by storage path
FILES: Final[str] = f"{ROOT}:files"  # fileId -> DocumentSource
CONTENTS: Final[str] = f"{ROOT}:contents"  # contentId -> LectureContentRecord
LECTURES: Final[str] = f"{ROOT}:lectures"  # userId:lectureId -> contentId
