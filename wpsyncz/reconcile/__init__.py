"""Per-category reconcilers and the registry that maps categories to them."""

from ..categories import Category
from .base import ActionType, ConfirmGate, ReconcileAction, Reconciler
from .database import DatabaseReconciler, database_replacements
from .media import MediaReconciler
from .plugins import PluginComparator, PluginDecision, PluginsReconciler

RECONCILERS: dict[Category, type[Reconciler]] = {
    Category.MEDIA: MediaReconciler,
    Category.PLUGINS: PluginsReconciler,
    Category.DB: DatabaseReconciler,
}
"""Reconciler class for every category"""

__all__ = [
    "RECONCILERS",
    "ActionType",
    "ConfirmGate",
    "DatabaseReconciler",
    "MediaReconciler",
    "PluginComparator",
    "PluginDecision",
    "PluginsReconciler",
    "ReconcileAction",
    "Reconciler",
    "database_replacements",
]
