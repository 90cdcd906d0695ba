from __future__ import annotations

from typing import Optional

import streamlit as st


PATH_PARAM = "path"


def current_path() -> Optional[str]:
    return st.query_params.get(PATH_PARAM)


def navigate(path: str) -> None:
    """Point the `path` query parameter at another screen and rerun."""
    st.query_params[PATH_PARAM] = path
    st.rerun()
