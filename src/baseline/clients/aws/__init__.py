from baseline.clients.aws.client import AWSClient

__all__ = ["AWSClient"]
