from __future__ import annotations

import re
from dataclasses import dataclass

_AUTHOR_DIR = re.compile(r"^(?:(?:(?:.*?/)?authors/)?id/)?([A-Z])/(\1[A-Z])/(\2[-A-Z0-9]*)/")
_ARCHIVE = re.compile(
    r"([^/]+)\.(tar\.(?:g?z|bz2|xz)|tar|zip|tgz|tbz|txz)$",
    re.IGNORECASE,
)
_DISTNAME = re.compile(
    r"""
    ^(
        (?:
            [-+.]*
            (?:[A-Za-z0-9]+|(?<=\D)_|_(?=\D))*
            (?:
                [A-Za-z](?=[^A-Za-z]|$)
                |
                \d(?=-)
            )
            (?<![._-][vV])
        )+
    )
    (.*)$
    """,
    re.VERBOSE | re.DOTALL | re.ASCII,
)
_VERSIONED_DISTNAME = re.compile(r"(-[Vv].*)-(\d.*)", re.DOTALL)
_UNDERSCORED_DISTNAME = re.compile(r"(.+_.*)-(\d.*)")
_TRAILING_DIGITS = re.compile(r"-(\d+\w)$", re.ASCII)
_TRAILING_WORD = re.compile(r"-(\w+)$", re.ASCII)
_DOTTED = re.compile(r"\d\.\d")


@dataclass(frozen=True, slots=True)
class ReleaseInfo:
    pathname: str
    filename: str
    cpanid: str | None
    dist: str
    version: str | None


def split_distname(distvname: str) -> tuple[str, str | None]:
    """Split ``Dist-Name-1.23`` into ``("Dist-Name", "1.23")``."""
    match = _DISTNAME.match(distvname)
    if match is None:
        return distvname, None
    dist, version = match.group(1), match.group(2)

    if dist.endswith("-undef") and not version:
        dist = dist[: -len("-undef")]
    version = version.removesuffix("-withoutworldwriteables")

    # Unicode-Collate-Standard-V3_1_1-0.1: the V3_1_1 belongs to the name
    versioned = _VERSIONED_DISTNAME.match(version)
    if versioned:
        dist += versioned.group(1)
        version = versioned.group(2)
    # Task-Deprecations5_14-1.00, but not libao-perl_0.03-1
    underscored = _UNDERSCORED_DISTNAME.match(version)
    if underscored:
        dist += underscored.group(1)
        version = underscored.group(2)

    dist = dist.removesuffix(".pm")
    if not version:
        trailing = _TRAILING_DIGITS.search(dist)
        if trailing:
            version = trailing.group(1)
            dist = dist[: trailing.start()]
    if version.isdigit() and version.isascii():
        trailing = _TRAILING_WORD.search(dist)
        if trailing:
            version = trailing.group(1) + version
            dist = dist[: trailing.start()]

    if _DOTTED.search(version):
        version = version.lstrip("-_.")
    else:
        version = version.lstrip("-_")
    return dist, version or None


def parse_release(release: str) -> ReleaseInfo | None:
    """Parse an author-relative release path such as ``A/AU/AUTHOR/Dist-1.0.tar.gz``.

    Returns ``None`` for anything that is not a recognizable distribution
    archive, e.g. a loose ``.pm`` file or a readme.
    """
    pathname = re.sub(r"//+", "/", release.strip())
    if not pathname:
        return None
    author = _AUTHOR_DIR.match(pathname)
    filename = pathname[author.end():] if author else pathname
    archive = _ARCHIVE.search(pathname)
    if archive is None:
        return None
    dist, version = split_distname(archive.group(1))
    if not dist:
        return None
    return ReleaseInfo(
        pathname=pathname,
        filename=filename,
        cpanid=author.group(3) if author else None,
        dist=dist,
        version=version,
    )


class ReleaseNamer:
    """Memoized release path → distribution name lookup.

    Many packages share one release, so each release string is parsed once per
    namer. A namer is meant to live for a single run.
    """

    def __init__(self) -> None:
        self._cache: dict[str, str | None] = {}
        self._hits = 0
        self._misses = 0

    def resolve(self, release: str) -> str | None:
        try:
            name = self._cache[release]
        except KeyError:
            self._misses += 1
            info = parse_release(release)
            name = info.dist if info is not None else None
            self._cache[release] = name
            return name
        self._hits += 1
        return name

    __call__ = resolve

    def cache_info(self) -> dict[str, int]:
        return {"hits": self._hits, "misses": self._misses, "size": len(self._cache)}

    def clear(self) -> None:
        self._cache.clear()
        self._hits = 0
        self._misses = 0
