"""Observable state exposed to display collaborators."""

from devise.state.converter import ConversionCoordinator, format_amount
from devise.state.history import HistoryController
from devise.state.observable import Observable

__all__ = [
    "ConversionCoordinator",
    "HistoryController",
    "Observable",
    "format_amount",
]
