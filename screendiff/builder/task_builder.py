"""Task builder — expands a capture spec into a flat, ordered task list.

Tasks are produced for every size x browser x host combination, in that
nesting order. Downstream stages address screenshots by position in this
list (diff pairs are ``[2i]`` / ``[2i+1]``), so the order matters.
"""

from __future__ import annotations

import logging
import re
import socket
from urllib.parse import quote_plus

from screendiff.data import browsers as browser_data
from screendiff.data import sizes as size_data
from screendiff.errors import BuildError, ScreendiffError
from screendiff.models.config import ScreendiffConfig
from screendiff.models.task import Action, CaptureSpec, CaptureTask, GroupItem

from .actions import load_actions
from .groups import GroupSource
from .metadata import MetadataClient, get_tab_name

logger = logging.getLogger(__name__)

_PRODUCTION_RE = re.compile(r"prod(uction)?")


def get_local_hostname() -> str:
    """Subdomain part of this machine's hostname, e.g. ``andrey``."""
    return socket.gethostname().split(".")[0]


def resolve_hosts(hosts: list[str], diff: bool, local_host: str) -> list[str]:
    """Apply host defaulting and check the diff host count.

    No hosts means "screenshot our own instance"; a single host in diff mode
    is compared against our own instance, which goes first.
    """
    resolved = list(hosts)
    if not resolved or (diff and len(resolved) == 1):
        resolved.insert(0, local_host)
    if diff and len(resolved) != 2:
        raise BuildError(
            f"Please pass one or two hosts if you want to run a diff (got {len(hosts)}: {', '.join(hosts)})"
        )
    return resolved


def get_base_url(host: str, default_domain: str) -> str:
    if _PRODUCTION_RE.fullmatch(host):
        netloc = default_domain
    elif "." in host:
        netloc = host
    elif ":" in host:
        subdomain, port = host.split(":", 1)
        netloc = f"{subdomain}.{default_domain}:{port}"
    else:
        netloc = f"{host}.{default_domain}"
    return f"https://{netloc}"


def get_path(spec: CaptureSpec, tab_name: str | None = None) -> str:
    match spec.command:
        case "path":
            path = spec.command_value
        case "search":
            path = "?q=" + quote_plus(spec.command_value)
        case "ia":
            path = f"?q={quote_plus(spec.query or '')}&ia={tab_name}"
        case _:
            raise BuildError(f"Can't build a path for command: {spec.command}")

    if spec.qs:
        qs = spec.qs.lstrip("&?")
        path += ("&" if "?" in path else "?") + qs
    return path


def get_url(spec: CaptureSpec, host: str, default_domain: str, tab_name: str | None = None) -> str:
    if spec.command == "url":
        return spec.command_value
    path = get_path(spec, tab_name)
    if not path.startswith("/"):
        path = "/" + path
    return get_base_url(host, default_domain) + path


def last_for_browser_indices(tasks: list[CaptureTask]) -> set[int]:
    """Positions of the last task for each distinct browser."""
    last: dict[str, int] = {}
    for i, task in enumerate(tasks):
        last[task.browser] = i
    return set(last.values())


def mark_last_for_browser(tasks: list[CaptureTask]) -> list[CaptureTask]:
    """Return copies of ``tasks`` with ``last_for_browser`` set correctly.

    Executors use the flag to shut a browser's session down as soon as it is
    no longer needed.
    """
    last = last_for_browser_indices(tasks)
    return [
        t.model_copy(update={"last_for_browser": i in last}) for i, t in enumerate(tasks)
    ]


def duplicate_for_extension(tasks: list[CaptureTask], extension_path: str) -> list[CaptureTask]:
    """Pair every task with a variant that loads the extension."""
    duplicated = []
    for task in tasks:
        duplicated.append(task)
        duplicated.append(task.model_copy(update={
            "browser": task.browser + browser_data.EXTENSION_SUFFIX,
            "extension_path": extension_path,
        }))
    return duplicated


class TaskBuilder:
    """Builds capture tasks from a CaptureSpec, including nested groups."""

    def __init__(
        self,
        config: ScreendiffConfig,
        metadata_client: MetadataClient | None = None,
        group_source: GroupSource | None = None,
        local_host: str | None = None,
    ):
        self.config = config
        self.metadata_client = metadata_client or MetadataClient(config.metadata_url)
        self.group_source = group_source or GroupSource(config.group_dir, config.group_builder_dir)
        self.local_host = local_host or get_local_hostname()

    async def build(self, spec: CaptureSpec) -> list[CaptureTask]:
        """Build the task list for a spec, with ``last_for_browser`` marked."""
        hosts = resolve_hosts(spec.hosts, spec.diff, self.local_host)

        if spec.command == "group":
            items = await self.group_source.get_items(spec.command_value)
            return await self._build_group(items, spec)

        tab_name = None
        if spec.command == "ia":
            metadata = await self.metadata_client.get_metadata(spec.command_value)
            # if we aren't going for a custom query, use the example one
            query = spec.query or metadata.get("example_query")
            if not query:
                raise BuildError(
                    f"missing query for IA {spec.command_value} - "
                    "either missing metadata or IA has been disabled?"
                )
            spec = spec.model_copy(update={"query": query})
            tab_name = get_tab_name(metadata)

        return self._get_tasks(spec, hosts, tab_name)

    def _get_tasks(self, spec: CaptureSpec, hosts: list[str], tab_name: str | None) -> list[CaptureTask]:
        actions = load_actions(self.config.action_dir, spec.action) if spec.action else []
        self._check_browsers(spec)

        tasks = []
        for size_name in spec.sizes:
            size = size_data.get_size(size_name)
            if size is None:
                raise BuildError(
                    f"Invalid size: {size_name}. Should be one of: {', '.join(size_data.available_sizes())}"
                )
            for browser in spec.browsers:
                for host in hosts:
                    tasks.append(self._get_task(spec, host, browser, size, actions, tab_name))

        if spec.extension_path:
            tasks = duplicate_for_extension(tasks, spec.extension_path)

        logger.debug("Built %d tasks for %s %s", len(tasks), spec.command, spec.command_value)
        return mark_last_for_browser(tasks)

    def _get_task(self, spec, host, browser, size, actions: list[Action], tab_name) -> CaptureTask:
        url = get_url(spec, host, self.config.default_domain, tab_name)
        # orientation can only be set on mobile, viewport size only on desktop
        if browser_data.is_mobile(browser):
            return CaptureTask(url=url, browser=browser, landscape=spec.landscape, actions=actions)
        return CaptureTask(url=url, browser=browser, size=size, actions=actions)

    @staticmethod
    def _check_browsers(spec: CaptureSpec) -> None:
        available = browser_data.available_browsers()
        for browser in spec.browsers:
            if browser not in available:
                raise BuildError(f"Invalid browser: {browser}. Should be one of: {', '.join(available)}")
        if spec.extension_path:
            non_local = [b for b in spec.browsers if b != browser_data.LOCAL_BROWSER]
            if non_local:
                raise BuildError(
                    f"Extension diffs only run on {browser_data.LOCAL_BROWSER}, got: {', '.join(non_local)}"
                )

    async def _build_group(self, items: list[GroupItem], spec: CaptureSpec) -> list[CaptureTask]:
        """Build every group item as if it was its own command.

        Items inherit the parent's options; browsers, sizes, action and qs
        can be overridden per item. Items can themselves be groups.
        """
        tasks: list[CaptureTask] = []
        for item in items:
            update: dict = {
                "command": item.command,
                "command_value": item.command_value,
                "query": item.query,
            }
            if item.browsers:
                update["browsers"] = list(item.browsers)
            if item.sizes:
                update["sizes"] = list(item.sizes)
            if item.action:
                update["action"] = item.action
            if item.qs:
                update["qs"] = item.qs
            child = spec.model_copy(update=update, deep=True)

            try:
                tasks.extend(await self.build(child))
            except ScreendiffError as e:
                # one bad item shouldn't prevent the rest of the group
                logger.warning("Skipping group item %s %s: %s", item.command, item.command_value, e)

        return mark_last_for_browser(tasks)
