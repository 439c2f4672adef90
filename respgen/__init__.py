"""
Responsive Image Pre-generation

Derives resized and re-encoded variants of source images and keeps an
incremental cache so that re-runs only produce what is missing:
    1. Plan: classify every (task, width, source) output as satisfied, stale or needed
    2. Run: transcode the missing outputs, persisting each one as it completes
    3. Publish: write one srcset/sizes/inline info file per source image
"""

__version__ = "1.0.0"

from .errors import (
    RespgenError,
    ConfigurationError,
    DiscoveryEmpty,
    CacheCorruption,
    CacheLocked,
    TranscodeFailure,
    UnsupportedFormat,
    PersistenceFailure,
    DownloadError,
)
from .tasks import OutputFormat, JpegOptions, PngOptions, WebpOptions, InlineOptions, Task
from .config import PipelineConfig, S3Settings
from .source_image import SourceImage
from .output_record import OutputDescriptor, OutputResult
from .output_paths import OutputPathResolver
from .cache_record import CacheRecord
from .cache_store import CacheStore
from .planner import Job, Plan, JobPlanner
from .transcoder import Transcoder, TranscodeResult
from .run_stats import RunStats
from .run_progress import RunProgress
from .runner import CancellationToken, JobRunner
from .aggregator import ImageInfo, ResultAggregator, InfoWriter
from .scanner import Scanner
from .remote import RemoteFetcher
from .run_log import LogEvent, RunLog
from .pipeline import Pipeline, PipelineResult
from .reporter import Reporter

__all__ = [
    "RespgenError",
    "ConfigurationError",
    "DiscoveryEmpty",
    "CacheCorruption",
    "CacheLocked",
    "TranscodeFailure",
    "UnsupportedFormat",
    "PersistenceFailure",
    "DownloadError",
    "OutputFormat",
    "JpegOptions",
    "PngOptions",
    "WebpOptions",
    "InlineOptions",
    "Task",
    "PipelineConfig",
    "S3Settings",
    "SourceImage",
    "OutputDescriptor",
    "OutputResult",
    "OutputPathResolver",
    "CacheRecord",
    "CacheStore",
    "Job",
    "Plan",
    "JobPlanner",
    "Transcoder",
    "TranscodeResult",
    "RunStats",
    "RunProgress",
    "CancellationToken",
    "JobRunner",
    "ImageInfo",
    "ResultAggregator",
    "InfoWriter",
    "Scanner",
    "RemoteFetcher",
    "LogEvent",
    "RunLog",
    "Pipeline",
    "PipelineResult",
    "Reporter",
]
