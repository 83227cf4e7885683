#!/usr/bin/env python3
"""
Dependency-aware batch migration of units
"""

__version__ = "0.1.0"

from unit_migrator.core.config import MigrationConfig, load_config
from unit_migrator.core.context import MigrationContext
from unit_migrator.core.engine import BatchExecutionEngine, EngineOptions

# Import the main classes and functions for easier access
from unit_migrator.core.orchestrator import BatchMigrationOrchestrator
from unit_migrator.core.report import ReportGenerator
from unit_migrator.core.resolver import DependencyGraphResolver, resolve_dependencies
from unit_migrator.core.tracker import SessionConfig, SessionTracker
from unit_migrator.services.discovery import load_units
from unit_migrator.services.processor import CallableProcessor, load_processor
from unit_migrator.types import BatchResult, MigrationUnit, ProcessResult
