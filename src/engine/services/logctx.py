def ctx_prefix(*, pid: str, pname: str, rid: str | None = None, batch: int | None = None) -> str:
    base = f"pid={pid} name={pname}"
    if rid is not None:
        base = f"{base} run={rid}"
    return f"{base} batch={batch}" if batch is not None else base
