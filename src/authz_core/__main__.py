"""Run the API with uvicorn: ``python -m authz_core``."""

from __future__ import annotations

import uvicorn

from authz_core.main import create_app


def main() -> None:
    uvicorn.run(create_app(), host="0.0.0.0", port=8000, log_config=None)


if __name__ == "__main__":
    main()
