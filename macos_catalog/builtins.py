"""Commands provided by the launcher itself."""

from macos_catalog.models import Category, CommandRecord

# (id, title, keywords)
SYSTEM_COMMANDS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("system-cursor-prompt", "Inline AI Prompt",
     ("ai", "prompt", "cursor", "inline", "rewrite", "edit", "command+shift+k")),
    ("system-add-to-memory", "Add This to Memory",
     ("memory", "supermemory", "selected text", "remember", "save context")),
    ("system-clipboard-manager", "Clipboard History",
     ("clipboard", "history", "copy", "paste", "manager")),
    ("system-open-settings", "SuperCmd Settings",
     ("settings", "preferences", "config", "configuration", "supercmd")),
    ("system-open-ai-settings", "SuperCmd AI",
     ("ai", "model", "provider", "openai", "anthropic", "ollama", "supercmd")),
    ("system-supercmd-whisper", "SuperCmd Whisper",
     ("whisper", "speech", "voice", "dictation", "transcribe", "overlay", "supercmd")),
    ("system-supercmd-speak", "SuperCmd Read",
     ("speak", "tts", "read", "selected text", "edge-tts", "speechify", "jarvis", "supercmd")),
    ("system-open-extensions-settings", "SuperCmd Extensions",
     ("extensions", "store", "community", "hotkey", "supercmd")),
    ("system-open-onboarding", "SuperCmd Onboarding",
     ("welcome", "onboarding", "intro", "setup", "supercmd")),
    ("system-quit-launcher", "Quit SuperCmd",
     ("exit", "close", "quit", "stop")),
    ("system-create-snippet", "Create Snippet",
     ("snippet", "create", "new", "text expansion")),
    ("system-search-snippets", "Search Snippets",
     ("snippet", "search", "find", "text expansion")),
    ("system-search-files", "Search Files",
     ("files", "finder", "search", "find", "open")),
    ("system-create-script-command", "Create Script Command",
     ("script", "command", "create", "custom", "raycast", "shell")),
    ("system-open-script-commands", "Open Script Commands Folder",
     ("script", "command", "folder", "directory", "raycast", "custom")),
    ("system-import-snippets", "Import Snippets",
     ("snippet", "import", "load", "file")),
    ("system-export-snippets", "Export Snippets",
     ("snippet", "export", "save", "backup", "file")),
)


def system_commands() -> list[CommandRecord]:
    """Build fresh records for the built-in commands."""
    return [
        CommandRecord(id=command_id, title=title, keywords=list(keywords), category=Category.SYSTEM_BUILTIN)
        for command_id, title, keywords in SYSTEM_COMMANDS
    ]
