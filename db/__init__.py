"""Database package for the contact timeline service."""
from db.connection import AsyncSessionLocal, dispose_engine, engine, get_db

__all__ = ["engine", "AsyncSessionLocal", "get_db", "dispose_engine"]
