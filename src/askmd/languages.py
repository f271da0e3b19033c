"""File name → fenced code block language hint."""

from __future__ import annotations

from pathlib import PurePath

_EXTENSION_MAP: dict[str, str] = {
    # Core languages
    ".go": "go",
    ".rs": "rust",
    ".md": "markdown",
    ".mdx": "markdown",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".json": "json",
    ".proto": "protobuf",
    ".html": "html",
    ".htm": "html",
    ".sql": "sql",
    # Frontend frameworks
    ".vue": "vue",
    ".svelte": "svelte",
    ".astro": "astro",
    ".graphql": "graphql",
    ".gql": "graphql",
    # Systems languages
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".java": "java",
    ".cs": "csharp",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    # Scripting languages
    ".py": "python",
    ".rb": "ruby",
    ".php": "php",
    ".sh": "bash",
    ".bash": "bash",
    ".zsh": "zsh",
    ".fish": "fish",
    ".ps1": "powershell",
    ".lua": "lua",
    ".hs": "haskell",
    # Config / data formats
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".xml": "xml",
    ".txt": "text",
    ".ini": "ini",
    # Stylesheets
    ".css": "css",
    ".scss": "scss",
    ".sass": "sass",
    ".less": "less",
    ".styl": "stylus",
    # Templates
    ".ejs": "ejs",
    ".hbs": "handlebars",
    ".pug": "pug",
}

# Exact file names win over extensions.
_FILENAME_MAP: dict[str, str] = {
    "Makefile": "makefile",
    "Dockerfile": "dockerfile",
    "Cargo.toml": "toml",
    "go.mod": "go",
    "go.sum": "text",
    "package.json": "json",
    ".gitignore": "text",
    ".env": "bash",
    ".env.example": "bash",
    "README": "text",
    "LICENSE": "text",
    ".eslintrc": "json",
    ".prettierrc": "json",
    ".babelrc": "json",
    "tsconfig.json": "json",
}


def language_hint(path: str | PurePath) -> str:
    """
    Return the fence info string for a file.

    Lookup order: exact file name, lower-cased extension, the bare extension
    itself, and finally ``"text"``.
    """
    pure = PurePath(path)
    if pure.name in _FILENAME_MAP:
        return _FILENAME_MAP[pure.name]
    ext = pure.suffix.lower()
    if ext in _EXTENSION_MAP:
        return _EXTENSION_MAP[ext]
    if ext:
        return ext[1:]
    return "text"
