"""Data models for requests, plans, questions and exercises."""
