"""Tree building utilities for visualizing archive contents."""


def build_file_tree(all_files: list[str], skipped: dict[str, str]) -> str:
    """Build a tree-style directory structure similar to the `tree` command.

    Files present in ``skipped`` are marked with a comment-like
    "# skipped (<reason>)" suffix.

    Args:
        all_files: List of all file paths in the archive
        skipped: Mapping of skipped path to the reason it was dropped

    Returns:
        Formatted tree string representation
    """
    tree = {}

    for filepath in all_files:
        parts = filepath.split('/')
        current = tree

        for part in parts[:-1]:
            node = current.setdefault(part, {})
            if not isinstance(node, dict):
                # a file and a directory share a name; keep the directory
                node = current[part] = {}
            current = node

        reason = skipped.get(filepath)
        current[parts[-1]] = f" # skipped ({reason})" if reason else ""

    lines = ["."]

    def walk(node: dict, prefix: str) -> None:
        # directories first, then files, each group alphabetical
        dirs = sorted(k for k, v in node.items() if isinstance(v, dict))
        files = sorted(k for k, v in node.items() if not isinstance(v, dict))
        names = dirs + files
        for idx, key in enumerate(names):
            last = idx == len(names) - 1
            branch = "└── " if last else "├── "
            value = node[key]
            if isinstance(value, dict):
                lines.append(f"{prefix}{branch}{key}/")
                walk(value, prefix + ("    " if last else "│   "))
            else:
                lines.append(f"{prefix}{branch}{key}{value}")

    walk(tree, "")
    return "\n".join(lines)
