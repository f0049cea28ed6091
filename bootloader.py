import argparse
import uvicorn

SERVICES = {
    "core": "app:app",
    "parse-service": "services.parse_jobs.app:app",
}

def main():
    parser = argparse.ArgumentParser(description="Start one of the storefront-core FastAPI apps.")
    parser.add_argument("service", choices=SERVICES.keys(), help="App to serve: the unified core or the standalone parse service")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes (use a redis job store when > 1)")
    parser.add_argument("--log-level", default="info", help="uvicorn log level")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload (dev mode)")
    args = parser.parse_args()

    app_path = SERVICES[args.service]
    print(f"[BOOTLOADER] Starting {args.service} ({app_path}) on {args.host}:{args.port} ...")
    uvicorn.run(
        app_path,
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=None if args.reload else args.workers,
        log_level=args.log_level,
    )

if __name__ == "__main__":
    main()
