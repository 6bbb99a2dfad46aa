"""
CLI entry point for android-ui-query.
Usage: pip install android-ui-query && android-ui-query
"""
import argparse


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Android UI Query - selector and XPath lookups over UI hierarchy dumps"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to run the server (default: 8000 or UI_QUERY_PORT)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind (default: 127.0.0.1 or UI_QUERY_HOST)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level (default: INFO or UI_QUERY_LOG_LEVEL)",
    )
    parser.add_argument(
        "--lenient-keys",
        action="store_true",
        help="Drop unknown selector attributes instead of rejecting the selector",
    )
    args = parser.parse_args(argv)

    from ui_query.config import configure_logging, load_settings
    from ui_query.api import create_app

    settings = load_settings(
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        strict_keys=False if args.lenient_keys else None,
    )
    configure_logging(settings.log_level)
    app = create_app(settings)

    import uvicorn

    url = "http://{}:{}".format(settings.host, settings.port)
    print("")
    print("Android UI Query")
    print("=" * 40)
    print("Server:   {}".format(url))
    print("API Docs: {}/docs".format(url))
    print("Selector keys: {}".format("strict" if settings.strict_keys else "lenient"))
    print("=" * 40)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
