from dotenv import load_dotenv
load_dotenv()

from flask import Flask
import logging
import threading
from config import Config
from api_client import ApiClient
from catalog import Catalog
from gateway import PersistenceGateway
from routes import main_bp
# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def create_app(config_class=Config, client=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    client = client or ApiClient.from_config(app.config)
    app.extensions['quotation_gateway'] = PersistenceGateway(client)
    app.extensions['quotation_catalog'] = Catalog(client)
    # Open quotation-editing flows, one QuotationSession each
    app.extensions['quotation_flows'] = {}
    app.extensions['quotation_flows_lock'] = threading.Lock()

    # Register Blueprint
    app.register_blueprint(main_bp)

    if client.health():
        logger.info(f"Quotation backend reachable at {app.config['QUOTATION_API_URL']}")
    else:
        logger.warning(f"Quotation backend not reachable at {app.config['QUOTATION_API_URL']}; "
                       "the bundled catalog will be used until it is")

    return app

if __name__ == '__main__':
    app = create_app()
    app.run(debug=True, host="0.0.0.0")
