"""
Extractors — unpack verified archives into place.

    TarGzExtractor      theseus ``.tar.gz``, lock-guarded atomic install
    ZipTarXzExtractor   zonky ``.jar`` wrapping a ``.txz``, same guarantees
    zip_extract         routed per-file zip extraction (extensions)
    tar_gz_extract      routed per-file gzip tarball extraction (extensions)
"""

from pg_embedded.core.services.archive.extractor.base import Extractor
from pg_embedded.core.services.archive.extractor.directories import ExtractDirectories
from pg_embedded.core.services.archive.extractor.registry import ExtractorRegistry
from pg_embedded.core.services.archive.extractor.tar import TarGzExtractor, tar_gz_extract, untar
from pg_embedded.core.services.archive.extractor.zip import ZipTarXzExtractor, zip_extract

__all__ = [
    "ExtractDirectories",
    "Extractor",
    "ExtractorRegistry",
    "TarGzExtractor",
    "ZipTarXzExtractor",
    "tar_gz_extract",
    "untar",
    "zip_extract",
]
