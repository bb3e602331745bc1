"""Transformed, cached images for image references found in HTML."""

from .cache import Artifact, ArtifactCache
from .codec import PillowCodec
from .config import FORMAT_ONLY, SKIP, TRANSFORM, ImageOptions, load_config, resolve_source_root
from .errors import CodecError, ConfigError, HtmlImagesError, MalformedReference, Notice
from .pipeline import ImagePipeline, PipelineStats, TransformResult

__version__ = "0.1.0"
