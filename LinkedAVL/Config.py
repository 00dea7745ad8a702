import os



# Contract checks (absent-node guards, out-of-range balance factors) are
# compiled into every @njit function that reads CHECK_CONTRACTS. Numba freezes
# global values at compile time, so "0" removes the branches entirely.
def _env_flag(
    name:    str,
    default: bool

) -> bool:

    raw = os.environ.get(name)
    if raw is None:
        return default

    return raw.strip().lower() not in ("0", "false", "no", "off", "")


CHECK_CONTRACTS = _env_flag("LINKEDAVL_CHECK_CONTRACTS", True)
