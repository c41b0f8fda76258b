# This runs inside the privileged injection pod, with the node's root
# filesystem mounted at the plan's host_mount. Standard library only: the
# source is passed to `python3 -c` in the debug image.

import argparse
import json
import os
import shutil
import sys
from dataclasses import asdict, dataclass, field

_TAG = "[distrodebug]"
_MAX_LINK_HOPS = 8


class RootfsNotFoundError(Exception):
    pass


@dataclass
class InjectionPlan:
    container_id: str
    rootfs_template: str
    host_mount: str = "/host"
    copies: list[tuple[str, str]] = field(
        default_factory=lambda: [("/bin", "bin"), ("/lib", "lib")]
    )
    multicall_binary: str = "/bin/busybox"
    link_dir: str = "bin"
    utilities: list[str] = field(default_factory=list)

    @property
    def rootfs(self) -> str:
        relative = self.rootfs_template.format(container_id=self.container_id)
        return os.path.join(self.host_mount, relative.lstrip("/"))

    def to_json(self) -> str:
        return json.dumps(asdict(self), separators=(",", ":"))

    @classmethod
    def from_json(cls, payload: str) -> "InjectionPlan":
        data = json.loads(payload)
        data["copies"] = [tuple(pair) for pair in data.get("copies", [])]
        plan = cls(**data)
        try:
            plan.rootfs
        except (KeyError, IndexError) as e:
            raise ValueError(f"bad rootfs template {plan.rootfs_template!r}: {e}") from e
        return plan


@dataclass
class InjectionReport:
    copied: int = 0
    copy_skipped: int = 0
    linked: int = 0
    link_skipped: int = 0
    failed: int = 0

    def summary(self) -> str:
        return (
            f"copied {self.copied} (skipped {self.copy_skipped}), "
            f"linked {self.linked} (skipped {self.link_skipped}), "
            f"failed {self.failed}"
        )


def _log(message: str):
    print(f"{_TAG} {message}", flush=True)


def _split(path: str) -> list[str]:
    return [part for part in path.split("/") if part and part != "."]


def _is_within(rootfs: str, path: str) -> bool:
    root = os.path.realpath(rootfs)
    return os.path.realpath(path).startswith(root + os.sep)


def resolve_in_rootfs(rootfs: str, relative: str) -> str:
    """Return the host path of a directory inside the target rootfs.

    Every component is resolved the way a chroot would: absolute symlink
    targets restart at the rootfs and ".." stops at it. Symlinked directories
    (e.g. /lib -> /usr/lib in merged-/usr images) therefore never lead onto
    the host.
    """
    pending = _split(relative)
    resolved: list[str] = []
    hops = 0
    while pending:
        part = pending.pop(0)
        if part == "..":
            if resolved:
                resolved.pop()
            continue
        candidate = os.path.join(rootfs, *resolved, part)
        if not os.path.islink(candidate):
            resolved.append(part)
            continue
        hops += 1
        if hops > _MAX_LINK_HOPS:
            raise OSError(f"Too many symlink hops resolving {relative} in {rootfs}")
        target = os.readlink(candidate)
        if os.path.isabs(target):
            resolved = []
        pending = _split(target) + pending

    path = os.path.join(rootfs, *resolved)
    if resolved and not _is_within(rootfs, path):
        raise OSError(f"{relative} resolves outside of {rootfs}")
    return path


def copy_tree_files(
    source_dir: str, dest_dir: str, report: InjectionReport
) -> None:
    """Copy each non-directory entry of source_dir into dest_dir, never overwriting."""
    try:
        entries = sorted(os.listdir(source_dir))
    except OSError as e:
        _log(f"WARN: cannot list {source_dir}: {e}")
        report.failed += 1
        return

    try:
        os.makedirs(dest_dir, exist_ok=True)
    except OSError as e:
        _log(f"WARN: cannot create {dest_dir}: {e}")
        report.failed += 1
        return

    for name in entries:
        src = os.path.join(source_dir, name)
        dest = os.path.join(dest_dir, name)
        if os.path.isdir(src) and not os.path.islink(src):
            continue
        # lexists: a dangling symlink still counts as present
        if os.path.lexists(dest):
            report.copy_skipped += 1
            continue
        try:
            shutil.copy2(src, dest, follow_symlinks=False)
            report.copied += 1
        except OSError as e:
            _log(f"WARN: failed to copy {src} -> {dest}: {e}")
            report.failed += 1


def link_utilities(
    link_dir: str, binary: str, names: list[str], report: InjectionReport
) -> None:
    for name in names:
        dest = os.path.join(link_dir, name)
        if os.path.lexists(dest):
            report.link_skipped += 1
            continue
        try:
            os.symlink(binary, dest)
            report.linked += 1
        except OSError as e:
            _log(f"WARN: failed to link {dest}: {e}")
            report.failed += 1


def inject(plan: InjectionPlan) -> InjectionReport:
    rootfs = plan.rootfs
    if not os.path.isdir(rootfs):
        raise RootfsNotFoundError(
            f"Container rootfs not found at {rootfs}. "
            "The node's container runtime may use a different layout."
        )
    _log(f"Target rootfs: {rootfs}")

    report = InjectionReport()
    for source_dir, dest_relative in plan.copies:
        try:
            dest_dir = resolve_in_rootfs(rootfs, dest_relative)
        except OSError as e:
            _log(f"WARN: {e}")
            report.failed += 1
            continue
        copy_tree_files(source_dir, dest_dir, report)

    try:
        link_dir = resolve_in_rootfs(rootfs, plan.link_dir)
    except OSError as e:
        _log(f"WARN: {e}")
        report.failed += len(plan.utilities)
        return report
    link_utilities(link_dir, plan.multicall_binary, plan.utilities, report)
    return report


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Copy a debugging toolkit into a container's root filesystem."
    )
    parser.add_argument(
        "--plan", type=str, required=True, help="The injection plan, as JSON."
    )
    args = parser.parse_args(argv)

    try:
        plan = InjectionPlan.from_json(args.plan)
    except (ValueError, TypeError) as e:
        _log(f"ERROR: invalid injection plan: {e}")
        return 2

    try:
        report = inject(plan)
    except RootfsNotFoundError as e:
        _log(f"ERROR: {e}")
        return 1

    _log(f"Done: {report.summary()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
