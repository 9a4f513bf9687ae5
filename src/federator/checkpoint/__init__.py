from .store import CheckpointStore, FileCheckpointStore, InMemoryCheckpointStore

__all__ = ["CheckpointStore", "FileCheckpointStore", "InMemoryCheckpointStore"]
