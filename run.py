from igame import create_app
from dotenv import load_dotenv
from waitress import serve
import logging
import os

load_dotenv()

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)

app = create_app()
mode = app.config['APP_ENV']

if __name__ == '__main__':
    port = int(os.getenv("PORT", 5000))
    if mode == 'development':
        app.run(host='0.0.0.0', port=port, debug=True)
    else:
        serve(app, host='0.0.0.0', port=port, threads=int(os.getenv('WAITRESS_THREADS', 4)))
