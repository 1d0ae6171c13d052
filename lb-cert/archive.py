# lb-cert/archive.py
"""
Certbot archive resolution.

certbot keeps versioned PEM files under archive/<domain>/ and points the
stable names under live/<domain>/ at the current version with symlinks:

    .../archive/example.com/fullchain2.pem
    .../live/example.com/fullchain.pem -> ../../archive/example.com/fullchain2.pem

The bundle is read as a gzip tar stream in a single forward pass. Archive
content and live links are collected into two maps and joined afterwards,
since a link may come before or after its target in stream order.
"""
import io
import logging
import tarfile
import zlib
from typing import BinaryIO

from errors import ArchiveFormatError, MissingMaterialError, UnresolvedLinkError

log = logging.getLogger(__name__)

PEM_SUFFIX = ".pem"


def _scan(archive: bytes | BinaryIO):
    """Return (contents, links), both keyed by domain then filename."""
    fileobj = io.BytesIO(archive) if isinstance(archive, (bytes, bytearray)) else archive
    contents: dict[str, dict[str, str]] = {}
    links: dict[str, dict[str, str]] = {}
    try:
        with tarfile.open(fileobj=fileobj, mode="r|gz") as tf:
            for member in tf:
                if not member.name.endswith(PEM_SUFFIX):
                    continue
                parts = member.name.split("/")
                if len(parts) < 3:
                    continue
                kind, domain, filename = parts[-3], parts[-2], parts[-1]
                log.debug("pem entry %s/%s/%s", kind, domain, filename)

                if kind == "archive":
                    if not member.isreg():
                        continue
                    fh = tf.extractfile(member)
                    try:
                        text = fh.read().decode("utf-8")
                    except UnicodeDecodeError as e:
                        raise ArchiveFormatError(f"archive/{domain}/{filename} is not PEM text") from e
                    contents.setdefault(domain, {})[filename] = text
                elif kind == "live":
                    if not (member.issym() or member.islnk()):
                        raise ArchiveFormatError(f"live/{domain}/{filename} is not a link")
                    links.setdefault(domain, {})[filename] = member.linkname
    except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
        raise ArchiveFormatError(f"Failed reading certificate archive: {e}") from e
    return contents, links


def _join(contents, links, domains):
    bundle: dict[str, dict[str, str]] = {}
    for domain in domains:
        resolved = {}
        for filename, target in links.get(domain, {}).items():
            pem = contents.get(domain, {}).get(target.rsplit("/", 1)[-1], "")
            if not pem:
                raise UnresolvedLinkError(domain, filename, target)
            resolved[filename[: -len(PEM_SUFFIX)]] = pem
        bundle[domain] = resolved
    return bundle


def resolve(archive: bytes | BinaryIO, domain: str) -> dict[str, dict[str, str]]:
    """Resolve the live material of one domain.

    Returns ``{domain: {"fullchain": ..., "privkey": ..., ...}}``. Raises
    ``MissingMaterialError`` when the bundle has no live entries for
    ``domain`` at all.
    """
    contents, links = _scan(archive)
    if domain not in links:
        raise MissingMaterialError(domain, "fullchain")
    return _join(contents, links, [domain])
