"""Catalogue of the external scaffolding tools projgen knows how to probe.

Each entry names the command, the arguments that make it print its version,
the component kinds it serves, and where to find install documentation per
operating system. Tools that are not in the catalogue can still be probed;
they default to ``<name> --version``.
"""

from __future__ import annotations

import platform
from dataclasses import dataclass, field

from projgen.models import ComponentKind


@dataclass(frozen=True)
class ToolInfo:
    name: str
    command: str
    version_args: tuple[str, ...] = ("--version",)
    version_pattern: str = ""
    min_version: str = ""
    kinds: tuple[ComponentKind, ...] = ()
    fallback_available: bool = True
    install_docs: dict[str, str] = field(default_factory=dict)
    quick_install: dict[str, tuple[str, ...]] = field(default_factory=dict)


_FRONTEND = (
    ComponentKind.FRONTEND_APP,
    ComponentKind.FRONTEND_HOME,
    ComponentKind.FRONTEND_ADMIN,
)

TOOLS: dict[str, ToolInfo] = {
    "npx": ToolInfo(
        name="npx",
        command="npx",
        kinds=_FRONTEND,
        install_docs={
            "linux": "https://nodejs.org/en/download/package-manager",
            "darwin": "https://nodejs.org/en/download/package-manager",
            "windows": "https://nodejs.org/en/download",
        },
        quick_install={
            "darwin": ("brew install node",),
            "linux": (
                "sudo apt-get install nodejs npm (Debian/Ubuntu)",
                "sudo yum install nodejs npm (RHEL/CentOS)",
            ),
            "windows": ("Download from nodejs.org or use 'choco install nodejs'",),
        },
    ),
    "go": ToolInfo(
        name="go",
        command="go",
        version_args=("version",),
        min_version="1.22",
        kinds=(ComponentKind.BACKEND_API,),
        install_docs={
            "linux": "https://go.dev/doc/install",
            "darwin": "https://go.dev/doc/install",
            "windows": "https://go.dev/doc/install",
        },
        quick_install={
            "darwin": ("brew install go",),
            "linux": (
                "sudo apt-get install golang (Debian/Ubuntu)",
                "sudo yum install golang (RHEL/CentOS)",
            ),
            "windows": ("Download from go.dev or use 'choco install golang'",),
        },
    ),
    "gradle": ToolInfo(
        name="gradle",
        command="gradle",
        min_version="8.0",
        kinds=(ComponentKind.MOBILE_ANDROID,),
        install_docs={
            "linux": "https://gradle.org/install/",
            "darwin": "https://gradle.org/install/",
            "windows": "https://gradle.org/install/",
        },
        quick_install={
            "darwin": ("brew install gradle",),
            "linux": ("sudo apt-get install gradle (Debian/Ubuntu)",),
            "windows": ("choco install gradle",),
        },
    ),
    "swift": ToolInfo(
        name="swift",
        command="swift",
        version_pattern=r"Swift version (\S+)",
        min_version="5.9",
        kinds=(ComponentKind.MOBILE_IOS,),
        install_docs={
            "linux": "https://www.swift.org/install/linux/",
            "darwin": "https://www.swift.org/install/macos/",
            "windows": "https://www.swift.org/install/windows/",
        },
        quick_install={"darwin": ("xcode-select --install",)},
    ),
    "xcodebuild": ToolInfo(
        name="xcodebuild",
        command="xcodebuild",
        version_args=("-version",),
        min_version="15.0",
        kinds=(ComponentKind.MOBILE_IOS,),
        install_docs={"darwin": "https://developer.apple.com/xcode/"},
    ),
    "docker": ToolInfo(
        name="docker",
        command="docker",
        kinds=(ComponentKind.INFRA_DOCKER,),
        install_docs={
            "linux": "https://docs.docker.com/engine/install/",
            "darwin": "https://docs.docker.com/desktop/install/mac-install/",
            "windows": "https://docs.docker.com/desktop/install/windows-install/",
        },
        quick_install={
            "darwin": ("brew install --cask docker",),
            "linux": ("curl -fsSL https://get.docker.com | sh",),
            "windows": ("Download Docker Desktop from docker.com",),
        },
    ),
    "terraform": ToolInfo(
        name="terraform",
        command="terraform",
        version_args=("version",),
        min_version="1.5",
        kinds=(ComponentKind.INFRA_TERRAFORM,),
        install_docs={
            "linux": "https://developer.hashicorp.com/terraform/install",
            "darwin": "https://developer.hashicorp.com/terraform/install",
            "windows": "https://developer.hashicorp.com/terraform/install",
        },
        quick_install={
            "darwin": ("brew install terraform",),
            "linux": ("sudo apt-get install terraform (with HashiCorp repo)",),
            "windows": ("choco install terraform",),
        },
    ),
}


def get_tool(name: str) -> ToolInfo:
    """Catalogue entry for *name*, or a generic ``<name> --version`` entry."""
    return TOOLS.get(name) or ToolInfo(name=name, command=name)


def tools_for_kind(kind: ComponentKind) -> list[str]:
    return sorted(name for name, info in TOOLS.items() if kind in info.kinds)


def has_fallback(kind: ComponentKind) -> bool:
    """Whether *kind* can be produced without any of its tools installed.

    Kinds with no catalogued tool are fallback-only and always ``True``.
    """
    tools = [TOOLS[name] for name in tools_for_kind(kind)]
    return not tools or any(t.fallback_available for t in tools)


def normalize_os(os_name: str = "") -> str:
    value = os_name.strip().lower()
    if value in ("darwin", "macos", "osx", "mac"):
        return "darwin"
    if value in ("linux", "unix"):
        return "linux"
    if value in ("windows", "win"):
        return "windows"
    if not value:
        return platform.system().lower()
    return value


def install_instructions(tool_name: str, os_name: str = "") -> str:
    """Human-readable installation help for *tool_name* on *os_name* (default: this host)."""
    info = TOOLS.get(tool_name)
    if info is None:
        return f"Tool '{tool_name}' is not registered. Please check the tool name."

    target = normalize_os(os_name)
    doc_url = info.install_docs.get(target)
    if doc_url is None:
        if tool_name == "xcodebuild":
            return "xcodebuild is only available on macOS. Install Xcode from the App Store."
        return (
            f"Installation instructions for '{tool_name}' on '{target}' are not available. "
            "Please visit the official documentation."
        )

    lines = [
        f"Installation instructions for '{tool_name}' on {target}:",
        f"  Documentation: {doc_url}",
    ]
    hints = info.quick_install.get(target, ())
    for i, hint in enumerate(hints):
        prefix = "  Quick install: " if i == 0 else " " * 17
        lines.append(prefix + hint)
    if info.fallback_available:
        lines.append("")
        lines.append("  Note: Fallback generation is available if this tool cannot be installed.")
    return "\n".join(lines)
