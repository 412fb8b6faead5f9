"""OpenGL function-pointer loader generator.

Reads the Khronos gl.xml registry, resolves the enums and commands required
by one api/version/profile selection plus optional extensions, and writes a
gl3w-style loader: a declarations header and a loading-logic source file.

Usage:
    python gl3w_gen.py --version 4.6 --profile core --ext GL_ARB_bindless_texture
"""

import argparse
import re
import string
import sys
import urllib.request
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import NamedTuple, TypeVar

DEFAULT_API = "gl"
DEFAULT_REGISTRY = Path("gl.xml")
DEFAULT_REGISTRY_URL = (
    "https://raw.githubusercontent.com/KhronosGroup/OpenGL-Registry/main/xml/gl.xml"
)
DEFAULT_PREFIX = "gl3w"
DEFAULT_OUTPUT_DIR = Path(".")


# ===--- CLI config contracts ---=== #


class ApiVersion(NamedTuple):
    major: int
    minor: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


class Profile(Enum):
    CORE = "core"
    COMPATIBILITY = "compatibility"


@dataclass(frozen=True)
class GenerateConfig:
    api: str
    version: ApiVersion
    profile: Profile
    extensions: tuple[str, ...]
    single_file: bool
    prefix: str
    registry: Path
    registry_url: str
    no_cache: bool
    output_dir: Path
    offline: bool = False


@dataclass(frozen=True)
class DiscoveryConfig:
    command: str
    api: str
    filter_text: str | None
    info_extension: str | None
    registry: Path
    registry_url: str
    no_cache: bool
    offline: bool = False


VALID_ERROR_CODES = {
    "INVALID_VERSION",
    "MISSING_VERSION",
    "INVALID_PROFILE",
    "INVALID_API",
    "INVALID_PREFIX",
    "INVALID_EXTENSION_NAME",
    "CONFLICT_GENERATE_DISCOVERY",
    "FILTER_WITHOUT_LIST",
    "PATH_NOT_FOUND",
}
_VERSION_RE = re.compile(r"^(\d+)\.(\d+)$")
_EXT_NAME_RE = re.compile(r"^GL_[A-Z0-9]+_[A-Za-z0-9_]+$")
_API_RE = re.compile(r"^[a-z][a-z0-9]*$")
_PREFIX_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


def parse_version(raw: str) -> ApiVersion:
    match = _VERSION_RE.match(raw)
    if match is None:
        raise ConfigError(
            "INVALID_VERSION",
            f"Invalid API version: {raw}",
            "Use MAJOR.MINOR, for example 3.3 or 4.6.",
        )
    return ApiVersion(int(match.group(1)), int(match.group(2)))


def parse_profile(raw: str) -> Profile:
    for profile in Profile:
        if profile.value == raw:
            return profile
    raise ConfigError(
        "INVALID_PROFILE",
        f"Unknown profile: {raw}",
        "Use one of: core, compatibility.",
    )


def validate_api_name(name: str) -> str:
    if _API_RE.match(name):
        return name
    raise ConfigError(
        "INVALID_API",
        f"Invalid API name: {name}",
        "API names are lower-case registry identifiers such as gl, gles2 or glsc2.",
    )


def validate_prefix(prefix: str) -> str:
    if _PREFIX_RE.match(prefix):
        return prefix
    raise ConfigError(
        "INVALID_PREFIX",
        f"Invalid symbol prefix: {prefix}",
        "The prefix must be a C identifier, for example gl3w.",
    )


def validate_extension_name(name: str) -> str:
    if _EXT_NAME_RE.match(name):
        return name
    raise ConfigError(
        "INVALID_EXTENSION_NAME",
        f"Invalid extension name: {name}",
        "Extension names must match GL_<VENDOR>_<name> (for example GL_ARB_debug_output).",
    )


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a gl3w-style OpenGL loader from gl.xml"
    )

    parser.add_argument("--api", type=str, default=DEFAULT_API)
    parser.add_argument("--version", type=str, default=None)
    parser.add_argument("--profile", type=str, default=Profile.CORE.value)
    parser.add_argument("--ext", action="append", nargs="+", default=None)
    parser.add_argument("--single-file", action="store_true", default=False)
    parser.add_argument("--prefix", type=str, default=DEFAULT_PREFIX)

    parser.add_argument("--registry", type=Path, default=DEFAULT_REGISTRY)
    parser.add_argument("--registry-url", type=str, default=DEFAULT_REGISTRY_URL)
    parser.add_argument("--no-cache", action="store_true", default=False)
    parser.add_argument("--offline", action="store_true", default=False)
    parser.add_argument("--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR)

    discovery_group = parser.add_mutually_exclusive_group()
    discovery_group.add_argument("--list-versions", action="store_true", default=False)
    discovery_group.add_argument(
        "--list-extensions", action="store_true", default=False
    )
    discovery_group.add_argument("--info", type=str, default=None)

    parser.add_argument("--filter", type=str, default=None)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def normalize_extensions(raw_extensions: object) -> tuple[str, ...]:
    """Flatten argparse --ext values into names, first occurrence wins."""
    if raw_extensions is None:
        return tuple()
    if not isinstance(raw_extensions, list):
        raise ConfigError(
            "INVALID_EXTENSION_NAME",
            f"Invalid --ext value type: {type(raw_extensions).__name__}",
            "Pass extension names as --ext GL_VENDOR_name.",
        )

    normalized: list[str] = []
    for entry in raw_extensions:
        names = entry if isinstance(entry, list) else [entry]
        for name in names:
            if not isinstance(name, str):
                raise ConfigError(
                    "INVALID_EXTENSION_NAME",
                    f"Invalid extension name type: {type(name).__name__}",
                    "Pass extension names as --ext GL_VENDOR_name.",
                )
            if name not in normalized:
                normalized.append(name)

    return tuple(normalized)


def validate_config(args: argparse.Namespace) -> GenerateConfig | DiscoveryConfig:
    raw_extensions = normalize_extensions(args.ext)
    has_generate_input = bool(args.version or raw_extensions or args.single_file)
    has_discovery_command = bool(
        args.list_versions or args.list_extensions or args.info
    )

    if args.filter and not args.list_extensions:
        raise ConfigError(
            "FILTER_WITHOUT_LIST",
            "--filter requires --list-extensions.",
            "Add --list-extensions or remove --filter.",
        )

    if has_generate_input and has_discovery_command:
        raise ConfigError(
            "CONFLICT_GENERATE_DISCOVERY",
            "Generate flags cannot be combined with discovery flags.",
            "Choose either generate mode or one discovery command.",
        )

    api = validate_api_name(args.api)

    if args.offline and not args.registry.is_file():
        raise ConfigError(
            "PATH_NOT_FOUND",
            f"Registry file does not exist: {args.registry}",
            "Drop --offline to download gl.xml, or pass an existing file with --registry.",
        )

    if has_discovery_command:
        if args.list_versions:
            command = "list-versions"
        elif args.list_extensions:
            command = "list-extensions"
        else:
            command = "info"

        info_extension = (
            validate_extension_name(args.info) if args.info is not None else None
        )
        return DiscoveryConfig(
            command=command,
            api=api,
            filter_text=args.filter,
            info_extension=info_extension,
            registry=args.registry,
            registry_url=args.registry_url,
            no_cache=bool(args.no_cache),
            offline=bool(args.offline),
        )

    if args.version is None:
        raise ConfigError(
            "MISSING_VERSION",
            "Generate mode requires --version.",
            "Pass --version MAJOR.MINOR, for example --version 3.3.",
        )

    return GenerateConfig(
        api=api,
        version=parse_version(args.version),
        profile=parse_profile(args.profile),
        extensions=tuple(validate_extension_name(name) for name in raw_extensions),
        single_file=bool(args.single_file),
        prefix=validate_prefix(args.prefix),
        registry=args.registry,
        registry_url=args.registry_url,
        no_cache=bool(args.no_cache),
        output_dir=args.output_dir,
        offline=bool(args.offline),
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig | DiscoveryConfig:
    return validate_config(parse_args(argv))


# ===--- Generator errors ---=== #


class GeneratorError(Exception):
    """Base class for registry and resolution failures.

    Every subclass carries a stable ``code`` and keeps the offending names as
    attributes so callers can inspect them without parsing the message.
    """

    code = "GENERATOR_ERROR"

    def __init__(self, message: str, suggestion: str | None = None):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion


class MalformedRegistry(GeneratorError):
    code = "MALFORMED_REGISTRY"

    def __init__(self, element: str, reason: str):
        super().__init__(f"Malformed registry at {element}: {reason}")
        self.element = element
        self.reason = reason


class ResolutionError(GeneratorError):
    code = "RESOLUTION_ERROR"


class UnsupportedVersion(ResolutionError):
    code = "UNSUPPORTED_VERSION"

    def __init__(self, api: str, version: ApiVersion, highest: ApiVersion | None):
        if highest is None:
            suggestion = f"The registry declares no features for api '{api}'."
        else:
            suggestion = f"Highest {api} version in the registry is {highest}."
        super().__init__(f"No {api} feature for version {version}", suggestion)
        self.api = api
        self.version = version
        self.highest = highest


class UnsupportedExtension(ResolutionError):
    code = "UNSUPPORTED_EXTENSION"

    def __init__(self, extension: str, api: str, supported: tuple[str, ...] = ()):
        if supported:
            message = f"Extension {extension} does not support api '{api}'"
            suggestion = f"{extension} supports: {', '.join(supported)}."
        else:
            message = f"Extension {extension} is not declared in the registry"
            suggestion = "Run --list-extensions to see the available names."
        super().__init__(message, suggestion)
        self.extension = extension
        self.api = api
        self.supported = supported


class UnsupportedProfile(ResolutionError):
    code = "UNSUPPORTED_PROFILE"

    def __init__(
        self,
        api: str,
        version: ApiVersion,
        profile: Profile,
        declared: tuple[str, ...] = (),
    ):
        suggestion = None
        if declared:
            suggestion = f"{api} {version} only declares profiles: {', '.join(declared)}."
        super().__init__(
            f"No {api} {version} requirements apply to the {profile.value} profile",
            suggestion,
        )
        self.api = api
        self.version = version
        self.profile = profile
        self.declared = declared


class UnknownSymbol(ResolutionError):
    code = "UNKNOWN_SYMBOL"

    def __init__(self, name: str, origin: str):
        super().__init__(f"{origin} references unknown symbol {name}")
        self.name = name
        self.origin = origin


# ===--- Registry model ---=== #


class Scope(Enum):
    """Profile scoping of a require/remove block.

    Core-scoped requirements also apply to the compatibility profile, which
    retains everything core has. OTHER covers profiles no request can select
    (GLES1 uses "common").
    """

    UNSCOPED = "unscoped"
    CORE = "core"
    COMPATIBILITY = "compatibility"
    OTHER = "other"

    def applies_to(self, profile: Profile) -> bool:
        if self is Scope.UNSCOPED:
            return True
        if self is Scope.CORE:
            return True
        if self is Scope.COMPATIBILITY:
            return profile is Profile.COMPATIBILITY
        return False


@dataclass(frozen=True)
class TypeDef:
    name: str
    definition: str
    requires: str | None = None
    api: str | None = None


@dataclass(frozen=True)
class EnumEntry:
    name: str
    value: int
    literal: str
    suffix: str = ""
    api: str | None = None
    group: str | None = None

    @property
    def c_literal(self) -> str:
        return self.literal + self.suffix


@dataclass(frozen=True)
class CommandParam:
    name: str
    c_type: str
    ptype: str | None = None
    array_suffix: str = ""

    @property
    def declaration(self) -> str:
        separator = "" if self.c_type.endswith("*") else " "
        return f"{self.c_type}{separator}{self.name}{self.array_suffix}"


@dataclass(frozen=True)
class Command:
    name: str
    return_type: str
    return_ptype: str | None
    params: tuple[CommandParam, ...]

    @property
    def type_refs(self) -> tuple[str, ...]:
        """Registry type names used by the signature, return type first."""
        refs = [self.return_ptype] + [p.ptype for p in self.params]
        return tuple(ref for ref in refs if ref is not None)


@dataclass(frozen=True)
class RequirementBlock:
    """One <require> or <remove> block.

    entries holds (kind, name) pairs in document order, kind being "enum",
    "command" or "type". Type entries are kept for display only.
    """

    entries: tuple[tuple[str, str], ...]
    scope: Scope = Scope.UNSCOPED
    api: str | None = None
    profile_name: str | None = None
    comment: str | None = None

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(name for kind, name in self.entries if kind != "type")

    @property
    def enums(self) -> tuple[str, ...]:
        return tuple(name for kind, name in self.entries if kind == "enum")

    @property
    def commands(self) -> tuple[str, ...]:
        return tuple(name for kind, name in self.entries if kind == "command")


@dataclass(frozen=True)
class Feature:
    name: str
    api: str
    version: ApiVersion
    requires: tuple[RequirementBlock, ...]
    removes: tuple[RequirementBlock, ...]


@dataclass(frozen=True)
class Extension:
    name: str
    supported: tuple[str, ...]
    requires: tuple[RequirementBlock, ...]

    def supports(self, api: str) -> bool:
        return api in self.supported


VariantT = TypeVar("VariantT", TypeDef, EnumEntry)


def _pick_variant(
    variants: tuple[VariantT, ...], api: str | None
) -> VariantT | None:
    """Prefer the variant tagged for api, then the untagged one, then any."""
    if not variants:
        return None
    for variant in variants:
        if api is not None and variant.api == api:
            return variant
    for variant in variants:
        if variant.api is None:
            return variant
    return variants[0]


@dataclass(frozen=True)
class Registry:
    """Read-only aggregate of one parsed registry document.

    The entity tuples keep declaration order. The *_index mappings are
    read-only views built once by index_registry; types and enums map a name
    to all of its api variants.
    """

    types: tuple[TypeDef, ...]
    enums: tuple[EnumEntry, ...]
    commands: tuple[Command, ...]
    features: tuple[Feature, ...]
    extensions: tuple[Extension, ...]
    type_index: Mapping[str, tuple[TypeDef, ...]]
    enum_index: Mapping[str, tuple[EnumEntry, ...]]
    command_index: Mapping[str, Command]
    feature_index: Mapping[str, Feature]
    extension_index: Mapping[str, Extension]

    def find_type(self, name: str, api: str | None = None) -> TypeDef | None:
        return _pick_variant(self.type_index.get(name, ()), api)

    def find_enum(self, name: str, api: str | None = None) -> EnumEntry | None:
        return _pick_variant(self.enum_index.get(name, ()), api)

    def find_command(self, name: str) -> Command | None:
        return self.command_index.get(name)

    def find_extension(self, name: str) -> Extension | None:
        return self.extension_index.get(name)

    def features_for(self, api: str) -> tuple[Feature, ...]:
        """Features of one api, ascending by version."""
        return tuple(
            sorted(
                (f for f in self.features if f.api == api),
                key=lambda f: f.version,
            )
        )

    def apis(self) -> tuple[str, ...]:
        seen: list[str] = []
        for feature in self.features:
            if feature.api not in seen:
                seen.append(feature.api)
        return tuple(seen)


# ===--- Registry parsing ---=== #


def _parse_c_int(s: str) -> int:
    s = s.strip()
    if s.startswith("-"):
        return -_parse_c_int(s[1:])
    if s.startswith("0x") or s.startswith("0X"):
        return int(s, 16)
    return int(s)


def _describe(tag: str, name: str | None = None, index: int | None = None) -> str:
    if name:
        return f'<{tag} name="{name}">'
    if index is not None:
        return f"<{tag}> #{index}"
    return f"<{tag}>"


def _normalize_c(text: str) -> str:
    return " ".join(text.split())


def _element_text(el: ET.Element) -> str:
    """Return the element's text content with <apientry/> spelled out."""
    parts = [el.text or ""]
    for child in el:
        if child.tag == "apientry":
            parts.append("APIENTRY")
        else:
            parts.append(_element_text(child))
        parts.append(child.tail or "")
    return "".join(parts)


def _split_declaration(
    el: ET.Element, where: str
) -> tuple[str, str | None, str, str]:
    """Split a <proto>/<param> into (c_type, ptype, name, suffix after name)."""
    parts = [el.text or ""]
    ptype = None
    for child in el:
        if child.tag == "name":
            name = (child.text or "").strip()
            if not name:
                raise MalformedRegistry(where, "empty <name>")
            return (
                _normalize_c("".join(parts)),
                ptype,
                name,
                (child.tail or "").strip(),
            )
        if child.tag == "ptype":
            ptype = (child.text or "").strip()
        parts.append(child.text or "")
        parts.append(child.tail or "")
    raise MalformedRegistry(where, "missing <name>")


def _required_attr(el: ET.Element, attr: str, where: str) -> str:
    value = el.get(attr)
    if not value:
        raise MalformedRegistry(where, f"missing required attribute '{attr}'")
    return value


def parse_feature_number(number: str, where: str) -> ApiVersion:
    match = _VERSION_RE.match(number.strip())
    if match is None:
        raise MalformedRegistry(where, f"unparseable version number '{number}'")
    return ApiVersion(int(match.group(1)), int(match.group(2)))


def parse_scope(profile: str | None) -> Scope:
    if not profile:
        return Scope.UNSCOPED
    if profile == Profile.CORE.value:
        return Scope.CORE
    if profile == Profile.COMPATIBILITY.value:
        return Scope.COMPATIBILITY
    return Scope.OTHER


def parse_types(root: ET.Element) -> list[TypeDef]:
    types: list[TypeDef] = []
    for index, t in enumerate(root.findall("types/type")):
        name = t.get("name")
        if not name:
            name_el = t.find("name")
            if name_el is not None:
                name = (name_el.text or "").strip()
        if not name:
            raise MalformedRegistry(_describe("type", index=index), "missing type name")
        types.append(
            TypeDef(
                name=name,
                definition=_element_text(t).strip(),
                requires=t.get("requires"),
                api=t.get("api"),
            )
        )
    return types


def parse_enums(root: ET.Element) -> list[EnumEntry]:
    enums: list[EnumEntry] = []
    for block in root.findall("enums"):
        group = block.get("group")
        for index, val in enumerate(block.findall("enum")):
            name = val.get("name")
            where = _describe("enum", name, index)
            if not name:
                raise MalformedRegistry(where, "missing required attribute 'name'")
            literal = _required_attr(val, "value", where).strip()
            try:
                value = _parse_c_int(literal)
            except ValueError as err:
                raise MalformedRegistry(
                    where, f"unparseable enum value '{literal}'"
                ) from err
            enums.append(
                EnumEntry(
                    name=name,
                    value=value,
                    literal=literal,
                    suffix=val.get("type", ""),
                    api=val.get("api"),
                    group=group,
                )
            )
    return enums


def parse_command(cmd: ET.Element, index: int) -> Command:
    proto = cmd.find("proto")
    if proto is None:
        raise MalformedRegistry(_describe("command", index=index), "missing <proto>")
    return_type, return_ptype, name, _ = _split_declaration(
        proto, _describe("command", index=index)
    )
    where = _describe("command", name)
    params = []
    for p in cmd.findall("param"):
        c_type, ptype, param_name, suffix = _split_declaration(p, where)
        params.append(CommandParam(param_name, c_type, ptype, suffix))
    return Command(
        name=name,
        return_type=return_type or "void",
        return_ptype=return_ptype,
        params=tuple(params),
    )


def parse_commands(root: ET.Element) -> list[Command]:
    return [
        parse_command(cmd, index)
        for index, cmd in enumerate(root.findall("commands/command"))
    ]


def parse_block(el: ET.Element, where: str) -> RequirementBlock:
    entries: list[tuple[str, str]] = []
    for child in el:
        if child.tag not in ("enum", "command", "type"):
            continue
        name = child.get("name")
        if not name:
            raise MalformedRegistry(
                f"{where} <{el.tag}>", f"<{child.tag}> entry without a name"
            )
        entries.append((child.tag, name))
    profile = el.get("profile")
    return RequirementBlock(
        entries=tuple(entries),
        scope=parse_scope(profile),
        api=el.get("api"),
        profile_name=profile,
        comment=el.get("comment"),
    )


def parse_features(root: ET.Element) -> list[Feature]:
    features: list[Feature] = []
    for index, feat in enumerate(root.findall("feature")):
        where = _describe("feature", feat.get("name"), index)
        name = _required_attr(feat, "name", where)
        api = _required_attr(feat, "api", where)
        version = parse_feature_number(_required_attr(feat, "number", where), where)
        requires: list[RequirementBlock] = []
        removes: list[RequirementBlock] = []
        for child in feat:
            if child.tag == "require":
                requires.append(parse_block(child, where))
            elif child.tag == "remove":
                removes.append(parse_block(child, where))
        features.append(
            Feature(
                name=name,
                api=api,
                version=version,
                requires=tuple(requires),
                removes=tuple(removes),
            )
        )
    return features


def parse_supported(value: str) -> tuple[str, ...]:
    """Split a supported= value on "|" (or "," in other Khronos registries)."""
    return tuple(token.strip() for token in re.split(r"[|,]", value) if token.strip())


def parse_extensions(root: ET.Element) -> list[Extension]:
    extensions: list[Extension] = []
    for index, ext in enumerate(root.findall("extensions/extension")):
        where = _describe("extension", ext.get("name"), index)
        name = _required_attr(ext, "name", where)
        supported = parse_supported(_required_attr(ext, "supported", where))
        requires = tuple(parse_block(req, where) for req in ext.findall("require"))
        extensions.append(Extension(name=name, supported=supported, requires=requires))
    return extensions


def _check_type_references(
    types: list[TypeDef],
    commands: list[Command],
    type_index: dict[str, list[TypeDef]],
) -> None:
    for type_def in types:
        if type_def.requires is not None and type_def.requires not in type_index:
            raise MalformedRegistry(
                _describe("type", type_def.name),
                f"requires undeclared type '{type_def.requires}'",
            )

    # Any api variant may be the one emitted, so every variant's edge counts.
    def walk(origin: str, trail: tuple[str, ...]) -> None:
        for variant in type_index[trail[-1]]:
            required = variant.requires
            if required is None:
                continue
            if required in trail:
                raise MalformedRegistry(
                    _describe("type", origin),
                    f"requires cycle through '{required}'",
                )
            walk(origin, trail + (required,))

    for type_def in types:
        walk(type_def.name, (type_def.name,))

    for cmd in commands:
        where = _describe("command", cmd.name)
        if cmd.return_ptype is not None and cmd.return_ptype not in type_index:
            raise MalformedRegistry(
                where, f"undeclared return type '{cmd.return_ptype}'"
            )
        for param in cmd.params:
            if param.ptype is not None and param.ptype not in type_index:
                raise MalformedRegistry(
                    where,
                    f"parameter '{param.name}' uses undeclared type '{param.ptype}'",
                )


def index_registry(
    types: list[TypeDef],
    enums: list[EnumEntry],
    commands: list[Command],
    features: list[Feature],
    extensions: list[Extension],
) -> Registry:
    """Build the name-indexed lookup tables and freeze everything into a Registry.

    Names are unique per kind: types and enums per (name, api), commands,
    features and extensions per name, features additionally per (api, version).
    An enum name may not also name a command.

    Raises:
        MalformedRegistry: On duplicates or on type references to undeclared
            types (command signatures and type requires= attributes).
    """
    type_index: dict[str, list[TypeDef]] = {}
    for type_def in types:
        variants = type_index.setdefault(type_def.name, [])
        if any(v.api == type_def.api for v in variants):
            raise MalformedRegistry(_describe("type", type_def.name), "duplicate type name")
        variants.append(type_def)

    enum_index: dict[str, list[EnumEntry]] = {}
    for entry in enums:
        variants = enum_index.setdefault(entry.name, [])
        if any(v.api == entry.api for v in variants):
            raise MalformedRegistry(_describe("enum", entry.name), "duplicate enum name")
        variants.append(entry)

    command_index: dict[str, Command] = {}
    for cmd in commands:
        if cmd.name in command_index:
            raise MalformedRegistry(_describe("command", cmd.name), "duplicate command name")
        if cmd.name in enum_index:
            raise MalformedRegistry(
                _describe("command", cmd.name), "name is also declared as an enum"
            )
        command_index[cmd.name] = cmd

    feature_index: dict[str, Feature] = {}
    feature_versions: set[tuple[str, ApiVersion]] = set()
    for feature in features:
        where = _describe("feature", feature.name)
        if feature.name in feature_index:
            raise MalformedRegistry(where, "duplicate feature name")
        if (feature.api, feature.version) in feature_versions:
            raise MalformedRegistry(
                where, f"duplicate {feature.api} feature version {feature.version}"
            )
        feature_index[feature.name] = feature
        feature_versions.add((feature.api, feature.version))

    extension_index: dict[str, Extension] = {}
    for ext in extensions:
        if ext.name in extension_index:
            raise MalformedRegistry(_describe("extension", ext.name), "duplicate extension name")
        extension_index[ext.name] = ext

    _check_type_references(types, commands, type_index)

    return Registry(
        types=tuple(types),
        enums=tuple(enums),
        commands=tuple(commands),
        features=tuple(features),
        extensions=tuple(extensions),
        type_index=MappingProxyType({k: tuple(v) for k, v in type_index.items()}),
        enum_index=MappingProxyType({k: tuple(v) for k, v in enum_index.items()}),
        command_index=MappingProxyType(command_index),
        feature_index=MappingProxyType(feature_index),
        extension_index=MappingProxyType(extension_index),
    )


def parse_registry_root(root: ET.Element) -> Registry:
    return index_registry(
        parse_types(root),
        parse_enums(root),
        parse_commands(root),
        parse_features(root),
        parse_extensions(root),
    )


def parse_registry(text: str) -> Registry:
    """Parse registry document text into a Registry.

    Raises:
        MalformedRegistry: On XML syntax errors or structural problems.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as err:
        raise MalformedRegistry("<registry>", f"XML syntax error: {err}") from err
    return parse_registry_root(root)


# ===--- Registry source ---=== #


def download_registry(url: str) -> str:
    request = urllib.request.Request(url, headers={"User-Agent": "gl3w-gen"})
    with urllib.request.urlopen(request, timeout=60) as response:
        return response.read().decode("utf-8")


def load_registry_text(
    path: Path, url: str, no_cache: bool = False, offline: bool = False
) -> str:
    """Return the registry document, downloading it when no cached copy exists.

    A cached file at path is reused unless no_cache is set. A downloaded
    document is written to path (parent directories created) before being
    returned. offline never touches the network and wins over no_cache.

    Raises:
        OSError: Filesystem or network failure (URLError is an OSError).
            FileNotFoundError when offline and path does not exist.
    """
    path = Path(path)
    if offline:
        print(f"Reusing {path} (offline)...")
        return path.read_text(encoding="utf-8")
    if path.is_file() and not no_cache:
        print(f"Reusing {path}...")
        return path.read_text(encoding="utf-8")

    print(f"Downloading {url} to {path}...")
    text = download_registry(url)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return text


def load_registry(
    path: Path, url: str, no_cache: bool = False, offline: bool = False
) -> Registry:
    return parse_registry(load_registry_text(path, url, no_cache, offline))


# ===--- Feature resolution ---=== #


@dataclass(frozen=True)
class ResolutionRequest:
    api: str
    version: ApiVersion
    profile: Profile = Profile.CORE
    extensions: tuple[str, ...] = ()


@dataclass(frozen=True)
class SymbolSet:
    """Ordered, deduplicated resolution result for one request.

    Attributes:
        api: The requested api; used to pick api-specific enum/type variants.
        enums: Enum names in first-insertion order.
        commands: Command names in first-insertion order.
        origins: Name -> feature or extension that put it in the set.
        extension_symbols: Names present only because a requested extension
            added them on top of the version baseline.
    """

    api: str
    enums: tuple[str, ...]
    commands: tuple[str, ...]
    origins: Mapping[str, str]
    extension_symbols: frozenset[str]


class _WorkingSet:
    """Symbol membership ordered by first insertion.

    A name that is removed and added again keeps its original rank, so the
    final order never depends on removal history.
    """

    def __init__(self) -> None:
        self._rank: dict[str, int] = {}
        self._members: set[str] = set()
        self._origins: dict[str, str] = {}

    def add(self, name: str, origin: str) -> bool:
        if name in self._members:
            return False
        if name not in self._rank:
            self._rank[name] = len(self._rank)
        self._members.add(name)
        self._origins[name] = origin
        return True

    def discard(self, name: str) -> None:
        self._members.discard(name)

    def ordered(self) -> list[str]:
        return sorted(self._members, key=self._rank.__getitem__)

    def origin(self, name: str) -> str:
        return self._origins[name]


def _unique(names: Iterable[str]) -> list[str]:
    result: list[str] = []
    for name in names:
        if name not in result:
            result.append(name)
    return result


def select_features(
    registry: Registry, api: str, version: ApiVersion
) -> tuple[Feature, ...]:
    """Return the api's features at or below version, ascending by version."""
    return tuple(f for f in registry.features_for(api) if f.version <= version)


def extension_block_applies(block: RequirementBlock, request: ResolutionRequest) -> bool:
    if block.api is not None and block.api != request.api:
        return False
    return block.scope.applies_to(request.profile)


def resolve(registry: Registry, request: ResolutionRequest) -> SymbolSet:
    """Compute the ordered enum and command sets for one request.

    Features of the requested api are applied in ascending version order:
    require blocks scoped to the requested profile (or unscoped) add names,
    and for the core profile the feature's core/unscoped remove blocks then
    drop names. Compatibility resolution also takes core-scoped requires and
    never removes, so it always contains the core result. Requested
    extensions are applied afterwards, in request order, and only ever add
    names.

    Every name referenced by a walked feature or requested extension must be
    declared in the registry, whether or not its block applied. A request
    whose walked features only carry blocks for unselectable profiles
    (GLES1 "common") fails instead of producing an empty loader.

    Args:
        registry: Parsed registry.
        request: api, version, profile and extension selection.

    Returns:
        SymbolSet with enums and commands ordered by first insertion.

    Raises:
        UnsupportedVersion: The api has no feature with exactly this version.
        UnsupportedExtension: An extension is undeclared or does not list the api.
        UnsupportedProfile: No walked require block applies to the profile.
        UnknownSymbol: A block references a name the registry does not declare.
    """
    available = registry.features_for(request.api)
    if not any(f.version == request.version for f in available):
        highest = available[-1].version if available else None
        raise UnsupportedVersion(request.api, request.version, highest)

    working = _WorkingSet()
    references: dict[str, str] = {}
    skipped_profiles: list[str] = []
    applied_any = False

    for feature in select_features(registry, request.api, request.version):
        for block in feature.requires:
            for name in block.names:
                references.setdefault(name, feature.name)
            if not block.scope.applies_to(request.profile):
                if block.scope is Scope.OTHER and block.profile_name not in skipped_profiles:
                    skipped_profiles.append(block.profile_name)
                continue
            applied_any = True
            for name in block.names:
                working.add(name, feature.name)

        for block in feature.removes:
            for name in block.names:
                references.setdefault(name, feature.name)
            if request.profile is not Profile.CORE:
                continue
            if not block.scope.applies_to(Profile.CORE):
                continue
            for name in block.names:
                working.discard(name)

    if skipped_profiles and not applied_any:
        raise UnsupportedProfile(
            request.api, request.version, request.profile, tuple(skipped_profiles)
        )

    extension_symbols: set[str] = set()
    for ext_name in _unique(request.extensions):
        extension = registry.find_extension(ext_name)
        if extension is None:
            raise UnsupportedExtension(ext_name, request.api)
        if not extension.supports(request.api):
            raise UnsupportedExtension(ext_name, request.api, extension.supported)
        for block in extension.requires:
            for name in block.names:
                references.setdefault(name, ext_name)
            if not extension_block_applies(block, request):
                continue
            for name in block.names:
                if working.add(name, ext_name):
                    extension_symbols.add(name)

    for name, origin in references.items():
        if registry.find_enum(name) is None and registry.find_command(name) is None:
            raise UnknownSymbol(name, origin)

    ordered = working.ordered()
    return SymbolSet(
        api=request.api,
        enums=tuple(n for n in ordered if registry.find_enum(n) is not None),
        commands=tuple(n for n in ordered if registry.find_command(n) is not None),
        origins=MappingProxyType({n: working.origin(n) for n in ordered}),
        extension_symbols=frozenset(extension_symbols),
    )


# ===--- Code emission ---=== #


@dataclass(frozen=True)
class ProcNames:
    """C identifiers generated for one command."""

    command: str
    pfn: str
    storage: str


def proc_names(command: str, prefix: str = DEFAULT_PREFIX) -> ProcNames:
    stem = command[2:] if command.startswith("gl") else command
    return ProcNames(
        command=command,
        pfn=f"PFN{command.upper()}PROC",
        storage=prefix + stem,
    )


@dataclass(frozen=True)
class EmittedFragments:
    """Text fragments for one SymbolSet, each a single line without newline.

    Attributes:
        types: Type definitions needed by the resolved command signatures.
        enums: One #define per resolved enum.
        prototypes: One function-pointer typedef per resolved command.
        externs: One extern storage declaration per resolved command.
        aliases: One #define mapping the GL name to its storage symbol.
        storage: One storage definition per resolved command.
        loads: One symbol-lookup assignment per resolved command.
    """

    types: tuple[str, ...]
    enums: tuple[str, ...]
    prototypes: tuple[str, ...]
    externs: tuple[str, ...]
    aliases: tuple[str, ...]
    storage: tuple[str, ...]
    loads: tuple[str, ...]

    @property
    def declarations(self) -> tuple[str, ...]:
        return self.types + self.enums + self.prototypes + self.externs + self.aliases


def collect_signature_types(
    registry: Registry, api: str, command_names: Iterable[str]
) -> tuple[TypeDef, ...]:
    """Return the types used by the given commands, each once.

    Types appear in order of first use across the signatures; a type's
    requires= dependency is placed before it.
    """
    ordered: list[TypeDef] = []
    emitted: set[str] = set()

    def visit(name: str) -> None:
        if name in emitted:
            return
        type_def = registry.find_type(name, api)
        if type_def is None:
            raise MalformedRegistry(_describe("type", name), "type is not declared")
        emitted.add(name)
        if type_def.requires is not None:
            visit(type_def.requires)
        ordered.append(type_def)

    for command_name in command_names:
        command = registry.find_command(command_name)
        if command is None:
            raise UnknownSymbol(command_name, "symbol set")
        for ref in command.type_refs:
            visit(ref)

    return tuple(ordered)


def emit_enum(entry: EnumEntry) -> str:
    return f"#define {entry.name:<45} {entry.c_literal}"


def emit_prototype(command: Command, names: ProcNames) -> str:
    params = ", ".join(p.declaration for p in command.params) or "void"
    separator = "" if command.return_type.endswith("*") else " "
    return (
        f"typedef {command.return_type}{separator}"
        f"(APIENTRYP {names.pfn})({params});"
    )


def emit_extern(names: ProcNames) -> str:
    return f"extern {names.pfn:<52} {names.storage};"


def emit_alias(names: ProcNames) -> str:
    return f"#define {names.command:<45} {names.storage}"


def emit_storage(names: ProcNames) -> str:
    return f"{names.pfn:<52} {names.storage};"


def emit_load(names: ProcNames) -> str:
    return f'{names.storage} = ({names.pfn}) get_proc("{names.command}");'


def emit(
    registry: Registry, symbols: SymbolSet, prefix: str = DEFAULT_PREFIX
) -> EmittedFragments:
    """Render a SymbolSet into declaration and loading fragments.

    Pure: no file I/O. Fragment order follows the SymbolSet order; enum values
    use the variant tagged for symbols.api when the registry has one.
    """
    commands = [registry.find_command(name) for name in symbols.commands]
    names = [proc_names(cmd.name, prefix) for cmd in commands]
    type_defs = collect_signature_types(registry, symbols.api, symbols.commands)

    enum_lines = []
    for enum_name in symbols.enums:
        entry = registry.find_enum(enum_name, symbols.api)
        enum_lines.append(emit_enum(entry))

    return EmittedFragments(
        types=tuple(t.definition for t in type_defs),
        enums=tuple(enum_lines),
        prototypes=tuple(emit_prototype(c, n) for c, n in zip(commands, names)),
        externs=tuple(emit_extern(n) for n in names),
        aliases=tuple(emit_alias(n) for n in names),
        storage=tuple(emit_storage(n) for n in names),
        loads=tuple(emit_load(n) for n in names),
    )


# ===--- Output templates ---=== #

BANNER_TEMPLATE = string.Template(
    """\
/*
 * This file was generated with gl3w_gen.py
 * Target: $target
 *
 * This is free and unencumbered software released into the public domain.
 *
 * Anyone is free to copy, modify, publish, use, compile, sell, or
 * distribute this software, either in source code form or as a compiled
 * binary, for any purpose, commercial or non-commercial, and by any
 * means.
 *
 * THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
 * EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
 * MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT.
 * IN NO EVENT SHALL THE AUTHORS BE LIABLE FOR ANY CLAIM, DAMAGES OR
 * OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE,
 * ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR
 * OTHER DEALINGS IN THE SOFTWARE.
 */

"""
)

HEADER_TEMPLATE = string.Template(
    """\
#ifndef __${prefix}_h_
#define __${prefix}_h_

#ifndef __gl_h_
#define __gl_h_
#endif

#if defined(_WIN32) && !defined(APIENTRY) && !defined(__CYGWIN__) && !defined(__SCITECH_SNAP__)
#ifndef WIN32_LEAN_AND_MEAN
#define WIN32_LEAN_AND_MEAN 1
#endif
#include <windows.h>
#endif

#ifndef APIENTRY
#define APIENTRY
#endif
#ifndef APIENTRYP
#define APIENTRYP APIENTRY *
#endif
#ifndef GLAPI
#define GLAPI extern
#endif

#ifdef __cplusplus
extern "C" {
#endif

typedef void (*${PREFIX}glProc)(void);

/* ${prefix} api */
int ${prefix}Init(void);
int ${prefix}IsSupported(int major, int minor);
${PREFIX}glProc ${prefix}GetProcAddress(const char *proc);
"""
)

HEADER_FOOTER = """\
#ifdef __cplusplus
}
#endif

#endif
"""

SOURCE_TEMPLATE = string.Template(
    """\
${include}#ifdef _WIN32
#define WIN32_LEAN_AND_MEAN 1
#include <windows.h>

static HMODULE libgl;

static void open_libgl(void)
{
	libgl = LoadLibraryA("opengl32.dll");
}

static void close_libgl(void)
{
	FreeLibrary(libgl);
}

static ${PREFIX}glProc get_proc(const char *proc)
{
	${PREFIX}glProc res;

	res = (${PREFIX}glProc) wglGetProcAddress(proc);
	if (!res)
		res = (${PREFIX}glProc) GetProcAddress(libgl, proc);
	return res;
}
#elif defined(__APPLE__) || defined(__APPLE_CC__)
#include <Carbon/Carbon.h>
#include <assert.h>

CFBundleRef bundle;
CFURLRef bundleURL;

static void open_libgl(void)
{
	bundleURL = CFURLCreateWithFileSystemPath(kCFAllocatorDefault,
		CFSTR("/System/Library/Frameworks/OpenGL.framework"),
		kCFURLPOSIXPathStyle, true);

	bundle = CFBundleCreate(kCFAllocatorDefault, bundleURL);
	assert(bundle != NULL);
}

static void close_libgl(void)
{
	CFRelease(bundle);
	CFRelease(bundleURL);
}

static ${PREFIX}glProc get_proc(const char *proc)
{
	${PREFIX}glProc res;

	CFStringRef procname = CFStringCreateWithCString(kCFAllocatorDefault, proc,
		kCFStringEncodingASCII);
	res = (${PREFIX}glProc) CFBundleGetFunctionPointerForName(bundle, procname);
	CFRelease(procname);
	return res;
}
#else
#include <dlfcn.h>
#include <GL/glx.h>

static void *libgl;
static PFNGLXGETPROCADDRESSPROC glx_get_proc_address;

static void open_libgl(void)
{
	libgl = dlopen("libGL.so.1", RTLD_LAZY | RTLD_GLOBAL);
	glx_get_proc_address = (PFNGLXGETPROCADDRESSPROC) dlsym(libgl, "glXGetProcAddressARB");
}

static void close_libgl(void)
{
	dlclose(libgl);
}

static ${PREFIX}glProc get_proc(const char *proc)
{
	${PREFIX}glProc res;

	res = (${PREFIX}glProc) glx_get_proc_address((const GLubyte *) proc);
	if (!res)
		res = (${PREFIX}glProc) dlsym(libgl, proc);
	return res;
}
#endif

static struct {
	int major, minor;
} version;

static int parse_version(void)
{
${parse_version_body}}

static void load_procs(void);

int ${prefix}Init(void)
{
	open_libgl();
	load_procs();
	close_libgl();
	return parse_version();
}

int ${prefix}IsSupported(int major, int minor)
{
	if (major < ${min_major})
		return 0;
	if (version.major == major)
		return version.minor >= minor;
	return version.major >= major;
}

${PREFIX}glProc ${prefix}GetProcAddress(const char *proc)
{
	return get_proc(proc);
}
"""
)

_QUERY_VERSION_BODY = """\
	if (!glGetIntegerv)
		return -1;

	glGetIntegerv(GL_MAJOR_VERSION, &version.major);
	glGetIntegerv(GL_MINOR_VERSION, &version.minor);

	if (version.major < ${min_major})
		return -1;
	return 0;
"""

_FIXED_VERSION_BODY = """\
	version.major = ${major};
	version.minor = ${minor};
	return 0;
"""

VERSION_QUERY_SYMBOLS: tuple[str, ...] = (
    "glGetIntegerv",
    "GL_MAJOR_VERSION",
    "GL_MINOR_VERSION",
)
"""Symbols the runtime version query in parse_version() needs.

When a request does not resolve all of them (GL below 3.0, GLES 2.0) the
loader records the requested version instead of querying the driver."""

QUERY_MIN_MAJOR = 3
"""Lowest major version the driver query accepts; fixed-version loaders use 1."""


# ===--- Output assembly ---=== #


@dataclass(frozen=True)
class WriteConfig:
    """Request metadata the templates need.

    Attributes:
        prefix: Symbol prefix, e.g. "gl3w".
        api: Requested api, e.g. "gl".
        version: Requested version.
        profile: Requested profile.
        extensions: Requested extension names in request order.
        single_file: Merge header and source into one artifact.
        query_version: Emit the runtime GL_MAJOR_VERSION query.
    """

    prefix: str
    api: str
    version: ApiVersion
    profile: Profile
    extensions: tuple[str, ...] = ()
    single_file: bool = False
    query_version: bool = True


@dataclass(frozen=True)
class Artifact:
    """One generated file, path relative to the output directory."""

    filename: str
    content: str


@dataclass(frozen=True)
class FileWriteResult:
    filename: str
    path: Path
    line_count: int
    byte_count: int


@dataclass(frozen=True)
class ArtifactWriteResult:
    output_dir: Path
    files: tuple[FileWriteResult, ...]

    @property
    def total_lines(self) -> int:
        """Sum of line_count across all written files."""
        return sum(f.line_count for f in self.files)


def build_target_label(config: WriteConfig) -> str:
    """Return e.g. "gl 4.6 core + GL_ARB_foo, GL_KHR_debug".

    Extensions keep request order, matching resolution order.
    """
    label = f"{config.api} {config.version} {config.profile.value}"
    if config.extensions:
        return f"{label} + {', '.join(config.extensions)}"
    return label


def header_path(prefix: str) -> str:
    return f"include/GL/{prefix}.h"


def source_path(prefix: str) -> str:
    return f"src/{prefix}.c"


def _template_values(config: WriteConfig) -> dict[str, str]:
    return {
        "prefix": config.prefix,
        "PREFIX": config.prefix.upper(),
        "target": build_target_label(config),
        "major": str(config.version.major),
        "minor": str(config.version.minor),
        "min_major": str(QUERY_MIN_MAJOR if config.query_version else 1),
    }


def _section(title: str, lines: tuple[str, ...]) -> list[str]:
    if not lines:
        return []
    return [f"/* {title} */", *lines, ""]


def assemble_header(fragments: EmittedFragments, config: WriteConfig) -> str:
    """Return the declarations file text.

    Layout: banner, fixed header skeleton, then non-empty sections for types,
    enums, function-pointer typedefs, extern storage and name aliases, then
    the footer. Ends with exactly one newline.
    """
    values = _template_values(config)
    parts: list[str] = [
        BANNER_TEMPLATE.substitute(values) + HEADER_TEMPLATE.substitute(values)
    ]
    body: list[str] = []
    body.extend(_section("Types", fragments.types))
    body.extend(_section("Enums", fragments.enums))
    body.extend(_section("Function pointer types", fragments.prototypes))
    body.extend(_section("OpenGL functions", fragments.externs))
    if fragments.aliases:
        body.extend([*fragments.aliases, ""])
    parts.append("\n".join(body))
    parts.append(HEADER_FOOTER)
    return "\n".join(parts)


def assemble_source(
    fragments: EmittedFragments, config: WriteConfig, self_include: bool = True
) -> str:
    """Return the loading-logic file text.

    self_include controls the leading #include of the generated header; the
    single-file artifact omits it. The banner is only written for the
    standalone file.
    """
    values = _template_values(config)
    body_template = _QUERY_VERSION_BODY if config.query_version else _FIXED_VERSION_BODY
    values["parse_version_body"] = string.Template(body_template).substitute(values)
    values["include"] = (
        f"#include <GL/{config.prefix}.h>\n\n" if self_include else ""
    )

    lines: list[str] = []
    if self_include:
        lines.append(BANNER_TEMPLATE.substitute(values).rstrip("\n"))
        lines.append("")
    lines.append(SOURCE_TEMPLATE.substitute(values))
    lines.extend(fragments.storage)
    lines.append("")
    lines.append("static void load_procs(void)")
    lines.append("{")
    lines.extend(f"    {load}" for load in fragments.loads)
    lines.append("}")
    return "\n".join(lines) + "\n"


def assemble_single_file(fragments: EmittedFragments, config: WriteConfig) -> str:
    guard = f"{config.prefix.upper()}_IMPLEMENTATION"
    return "\n".join(
        [
            assemble_header(fragments, config),
            f"#if defined({guard}) && !defined({guard}_DONE)",
            f"#define {guard}_DONE",
            "",
            assemble_source(fragments, config, self_include=False),
            f"#endif /* {guard} */",
            "",
        ]
    )


def assemble_artifacts(
    fragments: EmittedFragments, config: WriteConfig
) -> tuple[Artifact, ...]:
    if config.single_file:
        return (
            Artifact(header_path(config.prefix), assemble_single_file(fragments, config)),
        )
    return (
        Artifact(header_path(config.prefix), assemble_header(fragments, config)),
        Artifact(source_path(config.prefix), assemble_source(fragments, config)),
    )


def write_artifact(output_dir: Path, artifact: Artifact) -> FileWriteResult:
    """Write one artifact under output_dir, creating parent directories.

    Raises:
        OSError: Propagated directly if the filesystem write fails.
    """
    file_path = Path(output_dir) / artifact.filename
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(artifact.content, encoding="utf-8", newline="\n")
    resolved = file_path.resolve()
    file_bytes = resolved.read_bytes()
    return FileWriteResult(
        filename=artifact.filename,
        path=resolved,
        line_count=artifact.content.count("\n"),
        byte_count=len(file_bytes),
    )


def write_artifacts(
    output_dir: Path, artifacts: tuple[Artifact, ...]
) -> ArtifactWriteResult:
    """Write artifacts in order. No rollback on partial failure."""
    files = tuple(write_artifact(output_dir, artifact) for artifact in artifacts)
    return ArtifactWriteResult(output_dir=Path(output_dir), files=files)


# ===--- Discovery commands ---=== #


@dataclass(frozen=True)
class VersionSummary:
    """One row of the --list-versions table.

    Attributes:
        feature: Feature name, e.g. "GL_VERSION_3_2".
        version: Feature version.
        added_commands: Core-profile commands new at this version.
        added_enums: Core-profile enums new at this version.
        removed: Core-profile symbols dropped at this version.
        core_commands: Cumulative core-profile command count.
        compatibility_commands: Cumulative compatibility-profile command count.
    """

    feature: str
    version: ApiVersion
    added_commands: int
    added_enums: int
    removed: int
    core_commands: int
    compatibility_commands: int


@dataclass(frozen=True)
class ExtensionSummary:
    name: str
    supported: tuple[str, ...]
    enum_count: int
    command_count: int


@dataclass(frozen=True)
class ExtensionDetail:
    summary: ExtensionSummary
    blocks: tuple[RequirementBlock, ...]


def _resolve_or_empty(
    registry: Registry, api: str, version: ApiVersion, profile: Profile
) -> SymbolSet:
    # GLES1 "common" rows list as empty instead of aborting the table.
    try:
        return resolve(registry, ResolutionRequest(api, version, profile))
    except UnsupportedProfile:
        return SymbolSet(api, (), (), MappingProxyType({}), frozenset())


def gather_version_summaries(registry: Registry, api: str) -> list[VersionSummary]:
    """Return one VersionSummary per feature of api, ascending by version.

    Each row resolves the core and compatibility profiles at its version and
    diffs the core result against the previous row.

    Raises:
        UnknownSymbol: Propagated from resolve for inconsistent registries.
    """
    summaries: list[VersionSummary] = []
    prev_commands: set[str] = set()
    prev_enums: set[str] = set()

    for feature in registry.features_for(api):
        core = _resolve_or_empty(registry, api, feature.version, Profile.CORE)
        compat = _resolve_or_empty(registry, api, feature.version, Profile.COMPATIBILITY)
        commands = set(core.commands)
        enums = set(core.enums)
        summaries.append(
            VersionSummary(
                feature=feature.name,
                version=feature.version,
                added_commands=len(commands - prev_commands),
                added_enums=len(enums - prev_enums),
                removed=len((prev_commands | prev_enums) - (commands | enums)),
                core_commands=len(core.commands),
                compatibility_commands=len(compat.commands),
            )
        )
        prev_commands = commands
        prev_enums = enums

    return summaries


def _distinct_block_names(blocks: Iterable[RequirementBlock], kind: str) -> set[str]:
    return {name for block in blocks for k, name in block.entries if k == kind}


def summarize_extension(ext: Extension) -> ExtensionSummary:
    return ExtensionSummary(
        name=ext.name,
        supported=ext.supported,
        enum_count=len(_distinct_block_names(ext.requires, "enum")),
        command_count=len(_distinct_block_names(ext.requires, "command")),
    )


def gather_extension_summaries(registry: Registry, api: str) -> list[ExtensionSummary]:
    summaries = [
        summarize_extension(ext) for ext in registry.extensions if ext.supports(api)
    ]
    summaries.sort(key=lambda s: s.name)
    return summaries


def filter_extensions_by_text(
    summaries: list[ExtensionSummary],
    filter_text: str,
) -> list[ExtensionSummary]:
    """Case-insensitive substring filter on extension names; keeps order."""
    needle = filter_text.lower()
    return [s for s in summaries if needle in s.name.lower()]


def gather_extension_detail(registry: Registry, name: str) -> ExtensionDetail | None:
    ext = registry.find_extension(name)
    if ext is None:
        return None
    return ExtensionDetail(summary=summarize_extension(ext), blocks=ext.requires)


def format_versions_table(summaries: list[VersionSummary], api: str) -> str:
    """Return the complete --list-versions output.

        gl versions in registry:

          1.0  GL_VERSION_1_0   +306 commands  +  0 enums  -0 removed  ( 306 core,  306 compatibility)
    """
    lines = [f"{api} versions in registry:", ""]
    if not summaries:
        lines.append("  (none)")
    name_width = max((len(s.feature) for s in summaries), default=0)
    for row in summaries:
        lines.append(
            f"  {str(row.version):<4} {row.feature:<{name_width}}"
            f"  +{row.added_commands:<4} commands"
            f"  +{row.added_enums:<4} enums"
            f"  -{row.removed:<4} removed"
            f"  ({row.core_commands} core, {row.compatibility_commands} compatibility)"
        )
    lines.append("")
    return "\n".join(lines)


def format_extensions_table(summaries: list[ExtensionSummary], api: str) -> str:
    lines = [f"{len(summaries)} {api} extensions in registry:", ""]
    name_width = max((len(s.name) for s in summaries), default=0)
    for s in summaries:
        lines.append(
            f"  {s.name.ljust(name_width)}  {s.enum_count:>4} enums"
            f"  {s.command_count:>4} cmds  {'|'.join(s.supported)}"
        )
    lines.append("")
    return "\n".join(lines)


def _describe_block(block: RequirementBlock) -> str:
    scopes = []
    if block.api is not None:
        scopes.append(f"api={block.api}")
    if block.profile_name is not None:
        scopes.append(f"profile={block.profile_name}")
    if not scopes:
        return "Require:"
    return f"Require ({', '.join(scopes)}):"


def format_extension_detail(detail: ExtensionDetail) -> str:
    """Return the complete --info output for one extension.

        GL_KHR_debug
          Supported: gl, glcore, gles2
          Enums: 12  Commands: 4

          Require:
            enum     GL_DEBUG_OUTPUT
            command  glDebugMessageControl
    """
    s = detail.summary
    lines = [
        s.name,
        f"  Supported: {', '.join(s.supported)}",
        f"  Enums: {s.enum_count}  Commands: {s.command_count}",
    ]
    for block in detail.blocks:
        lines.append("")
        lines.append(f"  {_describe_block(block)}")
        for kind, name in block.entries:
            lines.append(f"    {kind:<8} {name}")
    lines.append("")
    return "\n".join(lines)


def run_discovery(config: DiscoveryConfig) -> None:
    """Execute the discovery command named by config and print its output.

    Raises:
        SystemExit(1): When --info names an extension the registry lacks.
        MalformedRegistry: Propagated from parsing.
    """
    registry = load_registry(
        config.registry, config.registry_url, config.no_cache, config.offline
    )

    if config.command == "list-versions":
        summaries = gather_version_summaries(registry, config.api)
        print(format_versions_table(summaries, config.api), end="")

    elif config.command == "list-extensions":
        ext_summaries = gather_extension_summaries(registry, config.api)
        if config.filter_text is not None:
            ext_summaries = filter_extensions_by_text(ext_summaries, config.filter_text)
        print(format_extensions_table(ext_summaries, config.api), end="")

    elif config.command == "info":
        assert config.info_extension is not None
        detail = gather_extension_detail(registry, config.info_extension)
        if detail is None:
            print(
                f"Error: extension '{config.info_extension}' not found in {config.registry}",
                file=sys.stderr,
            )
            raise SystemExit(1)
        print(format_extension_detail(detail), end="")


# ===--- Generation summary ---=== #


@dataclass(frozen=True)
class CategoryCount:
    """Item count in one category split by core vs. extension.

    Invariant: core + ext == total.
    """

    total: int
    core: int
    ext: int


@dataclass(frozen=True)
class GenerationCounts:
    types: CategoryCount
    enums: CategoryCount
    commands: CategoryCount


@dataclass(frozen=True)
class GenerationSummary:
    target_label: str
    source_label: str
    output_dir: str
    counts: GenerationCounts
    files: tuple[FileWriteResult, ...]


def _count(names: Iterable[str], ext_set: Iterable[str]) -> CategoryCount:
    names = list(names)
    ext_names = set(ext_set)
    ext = sum(1 for n in names if n in ext_names)
    return CategoryCount(total=len(names), core=len(names) - ext, ext=ext)


def build_generation_counts(registry: Registry, symbols: SymbolSet) -> GenerationCounts:
    """Count emitted types, enums and commands, split core vs. extension.

    A type counts as an extension type when only extension-added commands
    use it.
    """
    all_types = collect_signature_types(registry, symbols.api, symbols.commands)
    core_commands = [c for c in symbols.commands if c not in symbols.extension_symbols]
    core_types = {
        t.name for t in collect_signature_types(registry, symbols.api, core_commands)
    }
    type_names = [t.name for t in all_types]
    ext_types = [name for name in type_names if name not in core_types]

    return GenerationCounts(
        types=_count(type_names, ext_types),
        enums=_count(symbols.enums, symbols.extension_symbols),
        commands=_count(symbols.commands, symbols.extension_symbols),
    )


def build_generation_summary(
    write_config: WriteConfig,
    registry: Registry,
    symbols: SymbolSet,
    write_result: ArtifactWriteResult,
    source_label: str,
) -> GenerationSummary:
    return GenerationSummary(
        target_label=build_target_label(write_config),
        source_label=source_label,
        output_dir=str(write_result.output_dir),
        counts=build_generation_counts(registry, symbols),
        files=write_result.files,
    )


def format_generation_summary(summary: GenerationSummary) -> str:
    """Render a GenerationSummary as the post-generation console report.

    Split annotations appear only when extensions contributed to a category.
    Returns a string with exactly one trailing newline.
    """
    lines: list[str] = [
        "Loader generated:",
        "",
        f"  Target:     {summary.target_label}",
        f"  Source:     {summary.source_label}",
        f"  Output:     {summary.output_dir}",
        "",
        "  Symbols:",
    ]

    def _row(label: str, cc: CategoryCount) -> str:
        count_str = f"{cc.total:>6}"
        if cc.ext > 0:
            return f"    {label:<11}{count_str}  ({cc.core} core + {cc.ext} from extensions)"
        return f"    {label:<11}{count_str}"

    lines.append(_row("Types:", summary.counts.types))
    lines.append(_row("Enums:", summary.counts.enums))
    lines.append(_row("Commands:", summary.counts.commands))

    lines.append("")
    lines.append("  Files written:")
    for file_result in summary.files:
        lines.append(f"    {file_result.filename:<28} {file_result.line_count:>6,} lines")

    total_lines = sum(f.line_count for f in summary.files)
    lines.append("")
    lines.append(f"  Total: {total_lines:,} lines across {len(summary.files)} files")
    lines.append("")
    return "\n".join(lines)


def print_generation_summary(summary: GenerationSummary) -> None:
    print(format_generation_summary(summary), end="")


# ===--- Pipeline ---=== #


def build_request(config: GenerateConfig) -> ResolutionRequest:
    return ResolutionRequest(
        api=config.api,
        version=config.version,
        profile=config.profile,
        extensions=config.extensions,
    )


def build_write_config(config: GenerateConfig, symbols: SymbolSet) -> WriteConfig:
    resolved = set(symbols.enums) | set(symbols.commands)
    return WriteConfig(
        prefix=config.prefix,
        api=config.api,
        version=config.version,
        profile=config.profile,
        extensions=config.extensions,
        single_file=config.single_file,
        query_version=all(name in resolved for name in VERSION_QUERY_SYMBOLS),
    )


def run_generate(config: GenerateConfig) -> ArtifactWriteResult:
    """Execute the generation pipeline for a GenerateConfig.

    Stages: load -> parse -> resolve -> emit -> assemble -> write -> report.

    Raises:
        OSError: Registry not readable/downloadable or filesystem write failure.
        MalformedRegistry: Registry structure problems.
        ResolutionError: Unsupported version/extension or unknown symbols.
    """
    print(f"Parsing: {config.registry}")
    registry = load_registry(
        config.registry, config.registry_url, config.no_cache, config.offline
    )
    print(
        f"  Registry: {len(registry.types)} types, {len(registry.enums)} enums, "
        f"{len(registry.commands)} commands, {len(registry.features)} features, "
        f"{len(registry.extensions)} extensions"
    )

    symbols = resolve(registry, build_request(config))
    print(f"  Resolved: {len(symbols.enums)} enums, {len(symbols.commands)} commands")

    fragments = emit(registry, symbols, prefix=config.prefix)
    write_config = build_write_config(config, symbols)
    artifacts = assemble_artifacts(fragments, write_config)

    result = write_artifacts(config.output_dir, artifacts)
    print(
        f"  Written: {len(result.files)} files, "
        f"{result.total_lines} lines to {result.output_dir}"
    )

    summary = build_generation_summary(
        write_config, registry, symbols, result, source_label=str(config.registry)
    )
    print_generation_summary(summary)
    return result


# ===--- Main generation ---=== #


def main():
    try:
        config = build_config()
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err

    try:
        if isinstance(config, DiscoveryConfig):
            run_discovery(config)
        else:
            run_generate(config)
    except GeneratorError as err:
        print(f"Error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err
    except OSError as err:
        print(f"Error: {err}")
        raise SystemExit(1) from err
    except (RuntimeError, ValueError) as err:
        print(f"Internal error: {err}")
        raise SystemExit(1) from err


if __name__ == "__main__":
    main()
