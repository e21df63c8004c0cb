from fastapi import Request

from syncroom.services.listening_system import ListeningSystem


def get_listening_system(request: Request) -> ListeningSystem:
    return request.app.state.listening_system
