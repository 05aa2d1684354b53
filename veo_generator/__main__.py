import uvicorn

from veo_generator.config import settings


def main() -> None:
    uvicorn.run("veo_generator.app:app", host=settings.app_host, port=settings.app_port)


if __name__ == "__main__":
    main()
