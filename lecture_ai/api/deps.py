from fastapi import Request

from lecture_ai.core.container import Container


def get_container(request: Request) -> Container:
    return request.app.state.container
