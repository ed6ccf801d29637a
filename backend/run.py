import os

from cineguess import create_app, get_room_service, socketio

app = create_app()

if __name__ == '__main__':
    # Only the reloader's child serves requests; the watcher process must not tick rooms
    if os.environ.get('WERKZEUG_RUN_MAIN') == 'true':
        with app.app_context():
            get_room_service(app).resume_playing()
    # Use SocketIO server to enable websockets in dev
    try:
        socketio.run(app, debug=True)
    finally:
        get_room_service(app).shutdown()
