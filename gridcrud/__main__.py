import uvicorn

from gridcrud.core.config import settings


def main() -> None:
    uvicorn.run("gridcrud.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
