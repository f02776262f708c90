"""FastAPI service exposing the Lua syntax checker."""
