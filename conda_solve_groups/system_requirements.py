"""System requirements and the virtual packages they imply.

System requirements describe the minimum platform an environment needs
(``[system-requirements]`` in a manifest)::

    [system-requirements]
    linux = "5.10"
    cuda = "12"
    libc = { family = "glibc", version = "2.34" }

Requirements from several features or environments are combined with
:meth:`SystemRequirements.union`, which keeps the most restrictive value
per dimension.  Because it takes a maximum over a total order, the union
is commutative and associative, so a solve group gets the same result no
matter in which order its members are visited.  Requirements on two
different libc families cannot be combined; the manifest parsers reject
workspaces where an environment or solve group would need both.

Virtual packages are computed from the merged requirements and a target
platform, and rendered as conda ``PackageRecord`` virtual package records.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from functools import reduce
from typing import TYPE_CHECKING

from conda.exceptions import InvalidVersionSpec
from conda.models.records import PackageRecord
from conda.models.version import VersionOrder

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

#: Linux kernel version assumed when a workspace does not specify one.
DEFAULT_LINUX_VERSION = "4.18"

#: glibc version assumed when a workspace does not specify one.
DEFAULT_GLIBC_VERSION = "2.28"

#: macOS version assumed per platform when a workspace does not specify one.
DEFAULT_MACOS_VERSIONS = {
    "osx-64": "13.0",
    "osx-arm64": "13.0",
}

#: Microarchitecture reported by ``__archspec`` for each platform.
ARCHSPEC_BY_PLATFORM = {
    "linux-32": "x86",
    "linux-64": "x86_64",
    "linux-aarch64": "aarch64",
    "linux-armv6l": "armv6l",
    "linux-armv7l": "armv7l",
    "linux-ppc64le": "ppc64le",
    "linux-ppc64": "ppc64",
    "linux-s390x": "s390x",
    "linux-riscv64": "riscv64",
    "osx-64": "x86_64",
    "osx-arm64": "m1",
    "win-32": "x86",
    "win-64": "x86_64",
    "win-arm64": "aarch64",
}

_KNOWN_KEYS = ("linux", "macos", "cuda", "libc")


def _validate_version(key: str, value: Any) -> str:
    version = str(value).strip()
    try:
        VersionOrder(version)
    except InvalidVersionSpec as exc:
        raise ValueError(f"invalid {key} version '{value}'") from exc
    return version


def _version_key(version: str) -> tuple[VersionOrder, str]:
    # The raw string breaks ties between equivalent spellings ("10" / "10.0").
    return VersionOrder(version), version


def _most_restrictive(left: str | None, right: str | None) -> str | None:
    if left is None:
        return right
    if right is None:
        return left
    return max(left, right, key=_version_key)


@dataclass(frozen=True)
class LibCRequirement:
    """Minimum C library, e.g. glibc 2.28."""

    version: str
    family: str = "glibc"

    def __post_init__(self) -> None:
        # Family names are case-insensitive ("GLIBC" is "glibc").
        object.__setattr__(self, "family", self.family.lower())

    @property
    def virtual_package_name(self) -> str:
        return f"__{self.family}"

    def __str__(self) -> str:
        return f"{self.family} {self.version}"


def _most_restrictive_libc(
    left: LibCRequirement | None, right: LibCRequirement | None
) -> LibCRequirement | None:
    if left is None:
        return right
    if right is None:
        return left
    if left.family != right.family:
        raise ValueError(
            f"conflicting libc requirements: {left} and {right} "
            "(only one libc family can be required)"
        )
    return max(left, right, key=lambda libc: _version_key(libc.version))


@dataclass(frozen=True)
class SystemRequirements:
    """Minimum platform requirements; ``None`` means unconstrained."""

    linux: str | None = None
    macos: str | None = None
    cuda: str | None = None
    libc: LibCRequirement | None = None

    @classmethod
    def from_table(cls, table: Mapping[str, Any]) -> SystemRequirements:
        """Build requirements from a ``[system-requirements]`` table.

        Raises ``ValueError`` for unknown keys or unparsable versions.
        """
        unknown = sorted(set(table) - set(_KNOWN_KEYS))
        if unknown:
            raise ValueError(
                f"unknown system requirement(s): {', '.join(unknown)}"
            )

        libc: LibCRequirement | None = None
        raw_libc = table.get("libc")
        if isinstance(raw_libc, Mapping):
            if "version" not in raw_libc:
                raise ValueError("libc requirement needs a 'version'")
            libc = LibCRequirement(
                version=_validate_version("libc", raw_libc["version"]),
                family=str(raw_libc.get("family", "glibc")),
            )
        elif raw_libc is not None:
            libc = LibCRequirement(version=_validate_version("libc", raw_libc))

        return cls(
            linux=_validate_version("linux", table["linux"])
            if "linux" in table
            else None,
            macos=_validate_version("macos", table["macos"])
            if "macos" in table
            else None,
            cuda=_validate_version("cuda", table["cuda"]) if "cuda" in table else None,
            libc=libc,
        )

    @classmethod
    def merge(cls, requirements: Iterable[SystemRequirements]) -> SystemRequirements:
        """Union of all *requirements*; empty input gives no constraints.

        Raises ``ValueError`` on conflicting libc families.
        """
        return reduce(cls.union, requirements, cls())

    @property
    def is_empty(self) -> bool:
        return self == SystemRequirements()

    def union(self, other: SystemRequirements) -> SystemRequirements:
        """Return the most restrictive combination of *self* and *other*.

        An unset dimension never loosens a value set on the other side.
        Raises ``ValueError`` if the two sides require different libc
        families.
        """
        return SystemRequirements(
            linux=_most_restrictive(self.linux, other.linux),
            macos=_most_restrictive(self.macos, other.macos),
            cuda=_most_restrictive(self.cuda, other.cuda),
            libc=_most_restrictive_libc(self.libc, other.libc),
        )

    def to_dict(self) -> dict[str, str]:
        result: dict[str, str] = {}
        if self.linux:
            result["linux"] = self.linux
        if self.macos:
            result["macos"] = self.macos
        if self.cuda:
            result["cuda"] = self.cuda
        if self.libc:
            result["libc"] = str(self.libc)
        return result


@dataclass(frozen=True)
class VirtualPackage:
    """A platform capability expressed as a package, e.g. ``__glibc 2.28``."""

    name: str
    version: str = "0"
    build: str = "0"

    def to_record(self) -> PackageRecord:
        return PackageRecord.virtual_package(self.name, self.version, self.build)

    def __str__(self) -> str:
        return f"{self.name}={self.version}={self.build}"


def minimal_virtual_packages(
    platform: str, requirements: SystemRequirements
) -> list[VirtualPackage]:
    """Return the virtual packages implied by *requirements* on *platform*.

    Platform-specific packages fall back to workspace defaults when the
    requirement is unset.  ``noarch`` implies nothing.
    """
    is_linux = platform.startswith("linux-")
    is_osx = platform.startswith("osx-")
    is_windows = platform.startswith("win-")

    packages: list[VirtualPackage] = []
    if is_linux or is_osx:
        packages.append(VirtualPackage("__unix"))
    if is_windows:
        packages.append(VirtualPackage("__win"))

    archspec = ARCHSPEC_BY_PLATFORM.get(platform)
    if archspec:
        packages.append(VirtualPackage("__archspec", "1", archspec))

    if is_linux:
        packages.append(
            VirtualPackage("__linux", requirements.linux or DEFAULT_LINUX_VERSION)
        )
        libc = requirements.libc or LibCRequirement(DEFAULT_GLIBC_VERSION)
        packages.append(VirtualPackage(libc.virtual_package_name, libc.version))

    if is_osx:
        macos = requirements.macos or DEFAULT_MACOS_VERSIONS.get(platform)
        if macos:
            packages.append(VirtualPackage("__osx", macos))

    if requirements.cuda and not is_osx:
        packages.append(VirtualPackage("__cuda", requirements.cuda))

    return packages
