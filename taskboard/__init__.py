"""
Taskboard — kanban task tracker client for a hosted identity/table backend.

Tasks live in three fixed lanes (todo, inprogress, done). Persistence,
authentication and row-level security belong to the backend; this package
holds the task model, the store and identity clients, the authorization gate
and the board controller with its optimistic mutations.
"""

__version__ = "1.0.0"
__all__ = ["auth", "board", "engine", "models", "security", "store"]
