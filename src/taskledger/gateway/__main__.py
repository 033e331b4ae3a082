"""网关启动入口 -- python -m taskledger.gateway"""

import uvicorn

from .config import load_gateway_config


def main() -> None:
    config = load_gateway_config()
    uvicorn.run("taskledger.gateway.main:app", host=config.host, port=config.port)


if __name__ == "__main__":
    main()
