from pathlib import Path
from typing import Any, Optional, Sequence


class PostbaseException(Exception):
    """ABC for postbase exceptions to make it possible to catch them collectively"""


class FrontMatterException(PostbaseException):
    """Something is wrong with the metadata of one post.

    Always carries the file and, where there is one, the field so that the
    author can find the problem.

    """

    def __init__(self, path: Path, field: Optional[str], message: str):
        self.path = path
        self.field = field
        self.message = message
        super().__init__(path, field, message)

    def __str__(self) -> str:
        if self.field is None:
            return f"{self.path}: {self.message}"
        return f"{self.path}: {self.field}: {self.message}"


class MissingFrontMatterException(FrontMatterException):
    def __init__(self, path: Path, message: str = "no '+++' front matter block"):
        super().__init__(path, None, message)


class FrontMatterSyntaxException(FrontMatterException):
    def __init__(self, path: Path, message: str, line: Optional[int] = None):
        self.line = line
        super().__init__(path, None, message)


class MissingFieldException(FrontMatterException):
    def __init__(self, path: Path, field: str):
        super().__init__(path, field, "required field is missing")


class InvalidFieldException(FrontMatterException):
    pass


class UnparseableDateException(InvalidFieldException):
    def __init__(self, path: Path, field: str, value: Any):
        self.value = value
        super().__init__(path, field, f"not a valid timestamp: {value!r}")


class DuplicateSlugException(PostbaseException):
    def __init__(self, slug: str, paths: Sequence[Path]):
        self.slug = slug
        self.paths = list(paths)
        super().__init__(slug, self.paths)

    def __str__(self) -> str:
        joined = ", ".join(str(p) for p in self.paths)
        return f"slug '{self.slug}' is used by more than one post: {joined}"


class WrongEncodingException(PostbaseException):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(path)

    def __str__(self) -> str:
        return f"{self.path}: unable to work out the character encoding"


class PostDoesNotExistException(PostbaseException):
    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(slug)


class TagDoesNotExistException(PostbaseException):
    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(tag)


class BuildFailedException(PostbaseException):
    """The content could not be built.  Holds every error found, not just the
    first."""

    def __init__(self, errors: Sequence[PostbaseException]):
        self.errors = list(errors)
        super().__init__(self.errors)

    def __str__(self) -> str:
        lines = [f"build failed with {len(self.errors)} error(s):"]
        lines.extend(f"  {error}" for error in self.errors)
        return "\n".join(lines)
