"""Exception types raised by the remote store client and the artifact writer."""


class RemoteStoreError(RuntimeError):
    """Base class for failures talking to the remote memory store."""


class RemoteWriteFailure(RemoteStoreError):
    """The `record` operation failed or the store rejected the interaction."""


class RemoteReadFailure(RemoteStoreError):
    """The `context` operation failed or returned an unreadable body."""


class ArtifactWriteFailure(RuntimeError):
    """The context artifact could not be written to disk."""
