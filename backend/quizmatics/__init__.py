"""QuizMatics backend package.

This package exposes the models, repositories, services and HTTP
routers of the lesson/quiz management application. It is intentionally
lightweight; individual modules contain the concrete implementations
and documentation.
"""
