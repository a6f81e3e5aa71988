class RepolensError(Exception):
    """Base class for structural failures that abort an ingestion run."""


class InvalidRepositoryUrlError(RepolensError):
    pass


class RepoNotFoundError(RepolensError):
    pass


class AuthenticationError(RepolensError):
    pass


class AccessForbiddenError(RepolensError):
    pass


class ProjectNotFoundError(RepolensError):
    pass


class RepositoryTooLargeError(RepolensError):

    def __init__(self, file_count: int, limit: int):
        self.file_count = file_count
        self.limit = limit
        super().__init__(
            f"Repository has {file_count} indexable files, which exceeds the "
            f"limit of {limit}. Index a smaller repository or raise "
            f"indexing.max_files in the configuration."
        )


class PersistenceError(RepolensError):
    pass
