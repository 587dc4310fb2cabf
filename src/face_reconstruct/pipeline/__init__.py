"""High-level pipeline orchestration.

Contains configuration, pipeline stages and the export orchestrator.
"""

from .config import ExportConfig, load_calibrations
from .orchestrator import ReconstructionSession, run_export_pipeline

__all__ = [
    'ExportConfig',
    'load_calibrations',
    'ReconstructionSession',
    'run_export_pipeline',
]
