import uvicorn

from gitmentor.config import LOG_LEVEL, PORT

if __name__ == "__main__":
    uvicorn.run("gitmentor.main:app", host="0.0.0.0", port=PORT, log_level=LOG_LEVEL.lower())
