from windowkeeper.api.requests import RequestHandler

__all__ = ["RequestHandler"]
