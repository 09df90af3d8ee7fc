import os


def load_env(path: str = ".env") -> bool:
    """
    Minimal .env reader for CFG_* / NEO4J_* overrides.
    Variables already set in the environment win.
    Looks in the working directory, then next to the project sources.
    Returns True when a file was read.
    """
    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    found = next(
        (p for p in (path, os.path.join(project_root, path)) if os.path.isfile(p)),
        None,
    )
    if found is None:
        return False

    try:
        with open(found, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError:
        return False

    for raw in lines:
        line = raw.strip()
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = (part.strip() for part in line.split("=", 1))
        if key:
            os.environ.setdefault(key, value.strip("'\""))
    return True
