"""
schemas/ — Pydantic request/response models for the Yumi API

Request bodies are validated here; validation failures surface as
400 responses through the RequestValidationError handler in main.py.
"""
