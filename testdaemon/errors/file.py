"""Filesystem errors (FILE_001 .. FILE_008)."""

from typing import Optional

from testdaemon.errors.base import DaemonError


class FileSystemError(DaemonError):
    default_code = "FILE_001"


class PathNotFoundError(FileSystemError):
    default_code = "FILE_001"

    def __init__(self, file_path: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"File or directory not found: {file_path}",
            context={"file_path": file_path},
            cause=cause,
        )
        self.file_path = file_path


class FilePermissionError(FileSystemError):
    default_code = "FILE_002"

    def __init__(self, file_path: str, operation: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Permission denied for '{operation}' on: {file_path}",
            context={"file_path": file_path, "operation": operation},
            cause=cause,
        )
        self.file_path = file_path
        self.operation = operation


class InvalidJsonError(FileSystemError):
    default_code = "FILE_003"

    def __init__(self, file_path: str, parse_error: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Invalid JSON in file {file_path}: {parse_error}",
            context={"file_path": file_path, "parse_error": parse_error},
            cause=cause,
        )
        self.file_path = file_path


class DirectoryCreationError(FileSystemError):
    default_code = "FILE_004"

    def __init__(self, dir_path: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to create directory: {dir_path}",
            context={"dir_path": dir_path},
            cause=cause,
        )


class FileWriteError(FileSystemError):
    default_code = "FILE_005"

    def __init__(self, file_path: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to write to file: {file_path}",
            context={"file_path": file_path, "operation": "write"},
            cause=cause,
        )


class FileReadError(FileSystemError):
    default_code = "FILE_006"

    def __init__(self, file_path: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to read file: {file_path}",
            context={"file_path": file_path, "operation": "read"},
            cause=cause,
        )
        self.file_path = file_path


class FileCopyError(FileSystemError):
    default_code = "FILE_007"

    def __init__(self, source_path: str, dest_path: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to copy file from {source_path} to {dest_path}",
            context={"source_path": source_path, "dest_path": dest_path},
            cause=cause,
        )


class FileSearchError(FileSystemError):
    default_code = "FILE_008"

    def __init__(self, dir_path: str, pattern: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to search for files matching '{pattern}' in: {dir_path}",
            context={"dir_path": dir_path, "pattern": pattern},
            cause=cause,
        )
