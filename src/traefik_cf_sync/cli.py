#!/usr/bin/env python3
"""traefik-cf-sync - DNS records from Traefik routers

Polls the HTTP routers of one or more Traefik instances, extracts the hostname
from each router's Host() rule and emits a DNS record for every hostname that
is not already known. The new records are printed as a JSON array on stdout;
applying them to a DNS provider is left to the caller.

Environment variables:

    Traefik Instances:
        TRAEFIK_CONFIG_PATH    Path to YAML config file, or a directory of .yaml
                               files (default: /config/traefik-cf-sync.yaml)
                               Example config file:
                                 zone_name: example.com
                                 defaults:
                                   type: A
                                   proxied: true
                                   ttl: 1
                                 instances:
                                   - name: "core"
                                     url: "http://traefik:8080"
                                     username: "admin"
                                     password: "secret"
                                     ignored_rules: ["internal", "staging"]
                                   - name: "edge"
                                     url: "https://traefik2:8080"
                                     verify_tls: false

        TRAEFIK_INSTANCES      JSON list of instances (used if no config file).
                               Example:
                               [{"name":"core","url":"http://traefik:8080","ignored_rules":["internal"]}]

        Single-instance mode (used if config file and TRAEFIK_INSTANCES unset):
            TRAEFIK_URL            Traefik base URL
            TRAEFIK_USERNAME       Basic auth username (optional)
            TRAEFIK_PASSWORD       Basic auth password (optional)
            TRAEFIK_IGNORED_RULES  Comma-separated ignored substrings

    Record Defaults (overridden by the config file):
        DNS_RECORD_TYPE        "A" or "CNAME" (default: A)
        DNS_PROXIED            Proxied flag for new records (default: false)
        DNS_TTL                TTL for new records, 1 = automatic (default: 1)
        ZONE_NAME              Zone name, used as CNAME content
        CURRENT_IP             Address used as A content. Looked up from
                               IP_LOOKUP_URL when unset.
        IP_LOOKUP_URL          Plain-text IP echo service
                               (default: https://api.ipify.org)

    Runtime:
        EXISTING_RECORDS_PATH  YAML/JSON list of already-known records (optional)
        REQUEST_TIMEOUT_SECONDS  HTTP timeout (default: 10)
        LOG_LEVEL              DEBUG, INFO, WARNING, ERROR (default: INFO)
"""

from __future__ import annotations

import ipaddress
import json
import logging
import os
import posixpath
import re
import sys
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit, urlunsplit

import requests
import yaml
from requests.auth import HTTPBasicAuth

# =============================================================================
# Configuration
# =============================================================================

# Traefik configuration
TRAEFIK_CONFIG_PATH = os.getenv("TRAEFIK_CONFIG_PATH", "/config/traefik-cf-sync.yaml")
TRAEFIK_INSTANCES = os.getenv("TRAEFIK_INSTANCES", "").strip()
TRAEFIK_URL = os.getenv("TRAEFIK_URL", "")
TRAEFIK_USERNAME = os.getenv("TRAEFIK_USERNAME", "")
TRAEFIK_PASSWORD = os.getenv("TRAEFIK_PASSWORD", "")
TRAEFIK_IGNORED_RULES = os.getenv("TRAEFIK_IGNORED_RULES", "")

# Record defaults
DNS_RECORD_TYPE = os.getenv("DNS_RECORD_TYPE", "A")
DNS_PROXIED = os.getenv("DNS_PROXIED", "false")
DNS_TTL = os.getenv("DNS_TTL", "1")
ZONE_NAME = os.getenv("ZONE_NAME", "")
CURRENT_IP = os.getenv("CURRENT_IP", "")
IP_LOOKUP_URL = os.getenv("IP_LOOKUP_URL", "https://api.ipify.org")

# Runtime configuration
EXISTING_RECORDS_PATH = os.getenv("EXISTING_RECORDS_PATH", "")
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

ROUTERS_API_PATH = "/api/http/routers"
SUPPORTED_RECORD_TYPES = ("A", "CNAME")

# =============================================================================
# Logging Setup
# =============================================================================

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# =============================================================================
# Errors
# =============================================================================


class SyncError(Exception):
    """Base class for errors that abort a sync pass."""


class ConfigError(SyncError):
    pass


class InvalidInstanceURLError(ConfigError):
    pass


class RouterFetchError(SyncError):
    """The routers request could not be sent or completed."""


class RouterStatusError(SyncError):
    """Traefik answered the routers request with a non-200 status."""

    def __init__(self, instance_name: str, status_code: int):
        super().__init__(
            f"Unable to get Traefik ({instance_name}) rules: http status code {status_code}"
        )
        self.instance_name = instance_name
        self.status_code = status_code


class RouterDecodeError(SyncError):
    """The routers response body is not a JSON list of router objects."""


class AddressLookupError(SyncError):
    pass


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class DNSRecord:
    """A DNS record, either already known or newly derived from a router."""

    name: str
    type: str = ""
    content: str = ""
    proxied: bool = False
    ttl: int = 1


@dataclass(frozen=True)
class RecordDefaults:
    """Type, proxied flag and TTL given to every new record."""

    type: str = "A"
    proxied: bool = False
    ttl: int = 1


@dataclass(frozen=True)
class TraefikInstance:
    """Configuration for a Traefik instance."""

    name: str
    url: str
    username: str = ""
    password: str = ""
    ignored_rules: Tuple[str, ...] = ()
    verify_tls: bool = True


@dataclass(frozen=True)
class SyncConfig:
    """Everything a sync pass reads; nothing is taken from module globals."""

    instances: Tuple[TraefikInstance, ...]
    defaults: RecordDefaults = RecordDefaults()
    zone_name: str = ""
    current_ip: str = ""


@dataclass(frozen=True)
class TLSDomain:
    main: str = ""
    sans: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RouterTLS:
    cert_resolver: str = ""
    domains: Tuple[TLSDomain, ...] = ()


@dataclass(frozen=True)
class TraefikRouter:
    """An HTTP router as returned by the Traefik API."""

    name: str = ""
    rule: str = ""
    service: str = ""
    entry_points: Tuple[str, ...] = ()
    middlewares: Tuple[str, ...] = ()
    tls: RouterTLS = RouterTLS()
    status: str = ""
    using: Tuple[str, ...] = ()
    provider: str = ""
    priority: Optional[int] = None

    @classmethod
    def from_api(cls, data: Any) -> "TraefikRouter":
        """Decode one entry of the /api/http/routers response.

        Missing or null keys take their empty default. A key holding the wrong
        JSON type raises RouterDecodeError.
        """
        if not isinstance(data, dict):
            raise RouterDecodeError(f"expected router object, got {type(data).__name__}")

        tls_data = _get_field(data, "tls", dict, {})
        domains = []
        for domain in _get_field(tls_data, "domains", list, []):
            if not isinstance(domain, dict):
                raise RouterDecodeError(
                    f"field 'tls.domains': expected object, got {type(domain).__name__}"
                )
            domains.append(
                TLSDomain(
                    main=_get_field(domain, "main", str, ""),
                    sans=_get_str_list(domain, "sans"),
                )
            )

        priority = data.get("priority")
        if priority is not None and (isinstance(priority, bool) or not isinstance(priority, int)):
            raise RouterDecodeError(
                f"field 'priority': expected integer, got {type(priority).__name__}"
            )

        return cls(
            name=_get_field(data, "name", str, ""),
            rule=_get_field(data, "rule", str, ""),
            service=_get_field(data, "service", str, ""),
            entry_points=_get_str_list(data, "entryPoints"),
            middlewares=_get_str_list(data, "middlewares"),
            tls=RouterTLS(
                cert_resolver=_get_field(tls_data, "certResolver", str, ""),
                domains=tuple(domains),
            ),
            status=_get_field(data, "status", str, ""),
            using=_get_str_list(data, "using"),
            provider=_get_field(data, "provider", str, ""),
            priority=priority,
        )


def _get_field(data: Dict[str, Any], key: str, expected: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, expected):
        raise RouterDecodeError(
            f"field '{key}': expected {expected.__name__}, got {type(value).__name__}"
        )
    return value


def _get_str_list(data: Dict[str, Any], key: str) -> Tuple[str, ...]:
    values = _get_field(data, key, list, [])
    for value in values:
        if not isinstance(value, str):
            raise RouterDecodeError(
                f"field '{key}': expected list of strings, got {type(value).__name__} item"
            )
    return tuple(values)


# =============================================================================
# Rule Extraction and Filtering
# =============================================================================


class HostnameExtractor(ABC):
    """Finds the hostname a router rule matches on."""

    @abstractmethod
    def extract(self, rule: str) -> Optional[str]:
        """Return the hostname named by the rule, or None if it names none."""
        pass


class HostRuleExtractor(HostnameExtractor):
    """Takes the first Host(`...`) clause holding a lowercase domain name."""

    HOST_RULE_RE = re.compile(
        r"Host\(`((?:[a-z0-9]+(?:-[a-z0-9]+)*\.)+[a-z]{2,})`\)", re.MULTILINE
    )

    def extract(self, rule: str) -> Optional[str]:
        match = self.HOST_RULE_RE.search(rule or "")
        if match is None:
            return None
        return match.group(1)


def is_duplicate(hostname: str, records: Sequence[DNSRecord]) -> bool:
    """Check if a record with exactly this name is already known."""
    return any(record.name == hostname for record in records)


def matching_ignored_rule(hostname: str, ignored_rules: Sequence[str]) -> Optional[str]:
    """Return the first ignored rule contained in the hostname, if any."""
    for ignored_rule in ignored_rules:
        if ignored_rule in hostname:
            return ignored_rule
    return None


def is_ignored(hostname: str, ignored_rules: Sequence[str]) -> bool:
    return matching_ignored_rule(hostname, ignored_rules) is not None


def record_content(record_type: str, current_ip: str, zone_name: str) -> str:
    """Content for new records: the current address for A, the zone for CNAME."""
    if record_type == "A":
        return current_ip
    if record_type == "CNAME":
        return zone_name
    return ""


# =============================================================================
# Traefik Router Fetching
# =============================================================================


def build_routers_url(base_url: str) -> str:
    """Join the routers API path onto a Traefik base URL.

    Any path already on the base URL is kept, so a Traefik served under a
    prefix such as http://host/traefik works.
    """
    try:
        parts = urlsplit(base_url.strip())
        # Accessing port validates it.
        parts.port
    except ValueError as e:
        raise InvalidInstanceURLError(f"Unable to parse Traefik url {base_url}: {e}") from e

    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise InvalidInstanceURLError(
            f"Unable to parse Traefik url {base_url}: expected http(s)://host[:port][/path]"
        )

    joined = posixpath.normpath(f"{parts.path}/{ROUTERS_API_PATH.lstrip('/')}")
    path = "/" + joined.lstrip("/")
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))


class RouterFetcher(ABC):
    """Source of the HTTP routers of a Traefik instance."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the fetcher name for logging."""
        pass

    @abstractmethod
    def get_routers(self, instance: TraefikInstance) -> List[TraefikRouter]:
        pass


class TraefikRouterFetcher(RouterFetcher):
    """Reads routers from the Traefik API, one request per call."""

    def __init__(self, timeout_seconds: float = 10.0):
        self._timeout = timeout_seconds

    @property
    def name(self) -> str:
        return "Traefik"

    def get_routers(self, instance: TraefikInstance) -> List[TraefikRouter]:
        url = build_routers_url(instance.url)

        session = requests.Session()
        if instance.username and instance.password:
            session.auth = HTTPBasicAuth(instance.username, instance.password)

        logger.debug(f"Fetching routers from Traefik instance {instance.name}: {url}")
        try:
            with session:
                response = session.get(url, timeout=self._timeout, verify=instance.verify_tls)
        except (
            requests.exceptions.ChunkedEncodingError,
            requests.exceptions.ContentDecodingError,
        ) as e:
            # The body is read inside get(); a truncated or undecodable body lands here.
            raise RouterDecodeError(f"Unable to read Traefik ({instance.name}) rules: {e}") from e
        except requests.exceptions.RequestException as e:
            raise RouterFetchError(f"Unable to get Traefik ({instance.name}) rules: {e}") from e

        if response.status_code != 200:
            raise RouterStatusError(instance.name, response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise RouterDecodeError(f"Unable to load Traefik ({instance.name}) rules: {e}") from e

        if not isinstance(payload, list):
            raise RouterDecodeError(
                f"Unable to load Traefik ({instance.name}) rules: "
                f"expected list, got {type(payload).__name__}"
            )

        try:
            return [TraefikRouter.from_api(item) for item in payload]
        except RouterDecodeError as e:
            raise RouterDecodeError(f"Unable to load Traefik ({instance.name}) rules: {e}") from e


# =============================================================================
# Core Syncer
# =============================================================================


class TraefikRecordSyncer:
    """Appends a record for every new Traefik hostname to a record list."""

    def __init__(
        self,
        *,
        config: SyncConfig,
        fetcher: RouterFetcher,
        extractor: Optional[HostnameExtractor] = None,
    ):
        self.config = config
        self.fetcher = fetcher
        self.extractor = extractor or HostRuleExtractor()

    def sync_once(self, records: List[DNSRecord]) -> List[DNSRecord]:
        """Run one pass over all instances, in configured order.

        New records are appended to ``records``, which is also returned. Records
        already in the list are never changed or removed. Any error raised while
        fetching an instance ends the pass; later instances are not polled.
        """
        for instance in self.config.instances:
            routers = self.fetcher.get_routers(instance)
            self._sync_instance(instance, routers, records)
        return records

    def _sync_instance(
        self,
        instance: TraefikInstance,
        routers: List[TraefikRouter],
        records: List[DNSRecord],
    ) -> None:
        defaults = self.config.defaults
        content = record_content(defaults.type, self.config.current_ip, self.config.zone_name)

        rule_names: List[str] = []
        duplicate_count = 0
        ignored_count = 0
        for router in routers:
            hostname = self.extractor.extract(router.rule)
            if hostname is None:
                continue

            # Checked against everything appended so far, earlier instances included.
            if is_duplicate(hostname, records):
                duplicate_count += 1
                continue

            ignored_rule = matching_ignored_rule(hostname, instance.ignored_rules)
            if ignored_rule is not None:
                ignored_count += 1
                logger.debug(
                    f"Ignoring '{hostname}' from Traefik instance {instance.name} "
                    f"(router: {router.name}, matches ignored rule '{ignored_rule}')"
                )
                continue

            records.append(
                DNSRecord(
                    type=defaults.type,
                    name=hostname,
                    content=content,
                    proxied=defaults.proxied,
                    ttl=defaults.ttl,
                )
            )
            rule_names.append(hostname)

        logger.debug(f"Found rules in Traefik instance {instance.name}: {', '.join(rule_names)}")

        stats_parts = []
        if duplicate_count:
            stats_parts.append(f"{duplicate_count} already known")
        if ignored_count:
            stats_parts.append(f"{ignored_count} ignored")
        stats_msg = f" ({', '.join(stats_parts)})" if stats_parts else ""
        logger.info(f"Traefik instance '{instance.name}': {len(rule_names)} new records{stats_msg}")


# =============================================================================
# Config Loading
# =============================================================================


def find_config_files(config_path: str) -> List[str]:
    """Find all .yaml config files in directory or return single file.

    Args:
        config_path: Path to config file or directory

    Returns:
        List of config file paths (excluding .template files)
    """
    path = Path(config_path)

    if path.is_file():
        return [str(path)]

    if path.is_dir():
        yaml_files = sorted(path.glob("*.yaml"))
        return [str(f) for f in yaml_files if not f.name.endswith(".template")]

    return []


def _parse_bool(value: Any, *, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def _parse_int(value: Any, field_name: str, *, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be an integer, got {value!r}")
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise ConfigError(f"{field_name} must be an integer, got {value!r}") from e


def _parse_ignored_rules(value: Any) -> Tuple[str, ...]:
    """Accept a list or a comma-separated string; drop empty entries."""
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = [str(item) for item in value if item is not None]
    else:
        raise ConfigError(f"ignored_rules must be a list or string, got {type(value).__name__}")
    return tuple(item.strip() for item in items if item.strip())


def _parse_defaults(data: Any, base: RecordDefaults) -> RecordDefaults:
    if data is None:
        return base
    if not isinstance(data, dict):
        raise ConfigError(f"defaults must be a mapping, got {type(data).__name__}")
    record_type = str(data.get("type") or base.type).strip().upper()
    return RecordDefaults(
        type=record_type,
        proxied=_parse_bool(data.get("proxied"), default=base.proxied),
        ttl=_parse_int(data.get("ttl"), "defaults.ttl", default=base.ttl),
    )


def _instance_from_dict(item: Any, source: str) -> Optional[TraefikInstance]:
    if not isinstance(item, dict):
        logger.warning(f"Skipping non-mapping instance entry in {source}: {item!r}")
        return None
    name = str(item.get("name") or "traefik").strip()
    url = str(item.get("url") or "").strip()
    if not url:
        logger.warning(f"Skipping instance '{name}' in {source}: missing url")
        return None
    return TraefikInstance(
        name=name,
        url=url,
        username=str(item.get("username") or "").strip(),
        password=str(item.get("password") or "").strip(),
        ignored_rules=_parse_ignored_rules(item.get("ignored_rules")),
        verify_tls=_parse_bool(item.get("verify_tls"), default=True),
    )


def load_sync_config(
    *,
    config_path: str = "",
    instances_json: str = "",
    url: str = "",
    username: str = "",
    password: str = "",
    ignored_rules: str = "",
    record_type: str = "A",
    proxied: str = "false",
    ttl: str = "1",
    zone_name: str = "",
    current_ip: str = "",
) -> SyncConfig:
    """Build the sync configuration.

    Instances come from the YAML config file(s) if any exist, else from the
    TRAEFIK_INSTANCES JSON, else from the single-instance settings. Record
    defaults, zone name and current IP start from the keyword values and are
    overridden by keys in the config file(s).
    """
    defaults = RecordDefaults(
        type=record_type.strip().upper() or "A",
        proxied=_parse_bool(proxied, default=False),
        ttl=_parse_int(ttl, "DNS_TTL", default=1),
    )
    instances: List[TraefikInstance] = []

    config_files = find_config_files(config_path) if config_path else []
    for config_file in config_files:
        try:
            with open(config_file, "r") as f:
                config_data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {config_file}: {e}") from e

        if config_data is None:
            logger.warning(f"Config file {config_file} is empty")
            continue
        if not isinstance(config_data, dict):
            raise ConfigError(f"Config file {config_file} must contain a mapping")

        if "zone_name" in config_data:
            zone_name = str(config_data.get("zone_name") or "").strip()
        if "current_ip" in config_data:
            current_ip = str(config_data.get("current_ip") or "").strip()
        defaults = _parse_defaults(config_data.get("defaults"), defaults)

        raw_instances = config_data.get("instances") or []
        if not isinstance(raw_instances, list):
            raise ConfigError(f"Config file {config_file}: 'instances' must be a list")
        for item in raw_instances:
            instance = _instance_from_dict(item, config_file)
            if instance:
                instances.append(instance)

    if instances:
        logger.info(
            f"Loaded {len(instances)} Traefik instance(s) from {len(config_files)} config file(s)"
        )
    elif instances_json:
        try:
            raw = json.loads(instances_json)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Failed to parse TRAEFIK_INSTANCES JSON: {e}") from e
        if not isinstance(raw, list):
            raise ConfigError("TRAEFIK_INSTANCES must be a JSON list")
        for item in raw:
            instance = _instance_from_dict(item, "TRAEFIK_INSTANCES")
            if instance:
                instances.append(instance)
    elif url.strip():
        instances.append(
            TraefikInstance(
                name="traefik",
                url=url.strip(),
                username=username.strip(),
                password=password.strip(),
                ignored_rules=_parse_ignored_rules(ignored_rules),
            )
        )

    return SyncConfig(
        instances=tuple(instances),
        defaults=defaults,
        zone_name=zone_name.strip(),
        current_ip=current_ip.strip(),
    )


def load_existing_records(path: str) -> List[DNSRecord]:
    """Load already-known records from a YAML or JSON file.

    The file holds a list of records, or a mapping with a "records" list. Only
    "name" is required. A missing file yields no records.
    """
    if not path:
        return []
    record_path = Path(path)
    if not record_path.exists():
        logger.info(f"Existing records file {record_path} not found, starting empty")
        return []

    try:
        data = yaml.safe_load(record_path.read_text("utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load existing records from {record_path}: {e}") from e

    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get("records")
    if not isinstance(data, list):
        raise ConfigError(f"Existing records file {record_path} must contain a list of records")

    records = []
    for item in data:
        name = item.get("name") if isinstance(item, dict) else None
        if not isinstance(name, str) or not name:
            raise ConfigError(f"Malformed record in {record_path}: {item!r}")
        records.append(
            DNSRecord(
                name=name,
                type=str(item.get("type") or ""),
                content=str(item.get("content") or ""),
                proxied=_parse_bool(item.get("proxied"), default=False),
                ttl=_parse_int(item.get("ttl"), f"ttl of {name}", default=1),
            )
        )
    logger.debug(f"Loaded {len(records)} existing record(s) from {record_path}")
    return records


def lookup_current_ip(url: str, timeout: float = 10.0) -> str:
    """Ask a plain-text IP echo service for this host's public address."""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise AddressLookupError(f"Unable to look up current IP from {url}: {e}") from e

    candidate = response.text.strip()
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError as e:
        raise AddressLookupError(
            f"Unable to look up current IP from {url}: {candidate!r} is not an IP address"
        ) from e


# =============================================================================
# Main
# =============================================================================


def validate_config(config: SyncConfig) -> bool:
    """Validate configuration."""
    errors = []

    if not config.instances:
        errors.append(
            "At least one Traefik instance is required "
            "(set TRAEFIK_CONFIG_PATH, TRAEFIK_INSTANCES or TRAEFIK_URL)"
        )

    record_type = config.defaults.type
    if record_type == "CNAME" and not config.zone_name:
        errors.append("ZONE_NAME is required when the default record type is CNAME")
    elif record_type not in SUPPORTED_RECORD_TYPES:
        logger.warning(
            f"Record type {record_type} is not one of {', '.join(SUPPORTED_RECORD_TYPES)}; "
            f"new records will have empty content"
        )

    for instance in config.instances:
        if bool(instance.username) != bool(instance.password):
            logger.warning(
                f"Traefik instance {instance.name}: username and password must both be set "
                f"for basic auth. Using unauthenticated access."
            )

    if errors:
        for error in errors:
            logger.error(error)
        return False

    return True


def main():
    """Main entry point."""
    logger.info("traefik-cf-sync: traefik -> dns records")

    try:
        config = load_sync_config(
            config_path=TRAEFIK_CONFIG_PATH,
            instances_json=TRAEFIK_INSTANCES,
            url=TRAEFIK_URL,
            username=TRAEFIK_USERNAME,
            password=TRAEFIK_PASSWORD,
            ignored_rules=TRAEFIK_IGNORED_RULES,
            record_type=DNS_RECORD_TYPE,
            proxied=DNS_PROXIED,
            ttl=DNS_TTL,
            zone_name=ZONE_NAME,
            current_ip=CURRENT_IP,
        )

        if not validate_config(config):
            logger.error("Configuration validation failed")
            sys.exit(1)

        if config.defaults.type == "A" and not config.current_ip:
            config = replace(
                config, current_ip=lookup_current_ip(IP_LOOKUP_URL, REQUEST_TIMEOUT_SECONDS)
            )
            logger.info(f"Current IP: {config.current_ip}")

        logger.info(f"Traefik instances: {', '.join([i.name for i in config.instances])}")
        logger.info(
            f"Record defaults: type={config.defaults.type} "
            f"proxied={config.defaults.proxied} ttl={config.defaults.ttl}"
        )

        records = load_existing_records(EXISTING_RECORDS_PATH)
        known_count = len(records)

        fetcher = TraefikRouterFetcher(timeout_seconds=REQUEST_TIMEOUT_SECONDS)
        logger.info(f"Router source: {fetcher.name}")

        syncer = TraefikRecordSyncer(config=config, fetcher=fetcher)
        syncer.sync_once(records)
    except KeyboardInterrupt:
        logger.info("Interrupted, no records written")
        sys.exit(130)
    except SyncError as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)

    new_records = records[known_count:]
    logger.info(f"Found {len(new_records)} new record(s)")
    json.dump([asdict(r) for r in new_records], sys.stdout, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
