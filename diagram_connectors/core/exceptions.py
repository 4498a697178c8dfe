"""
Custom exceptions for the connector engine
"""


class ConnectorError(Exception):
    """Base exception for all connector engine errors"""
    pass


class InvalidConnectorError(ConnectorError):
    """Raised when a connector or connector record has invalid structure"""
    pass


class ConfigurationError(ConnectorError):
    """Raised when engine configuration fails validation"""
    pass
