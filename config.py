import os
import certifi
import dotenv

dotenv.load_dotenv()
class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'quotation-desk-dev-secret-key'

    # Quotation backend (parties, quotations, components)
    QUOTATION_API_URL = os.environ.get('QUOTATION_API_URL') or 'http://localhost:5000/api'
    REQUEST_TIMEOUT = float(os.environ.get('REQUEST_TIMEOUT', 30))
    HEALTH_TIMEOUT = float(os.environ.get('HEALTH_TIMEOUT', 5))

    # Retries apply to GET requests only
    REQUEST_RETRIES = int(os.environ.get('REQUEST_RETRIES', 3))
    RETRY_DELAY = float(os.environ.get('RETRY_DELAY', 1.0))
    RETRY_BACKOFF = float(os.environ.get('RETRY_BACKOFF', 1.5))

    # TLS verification against the backend
    CA_BUNDLE = os.environ.get('CA_BUNDLE') or certifi.where()

    DEFAULT_GST_RATE = float(os.environ.get('DEFAULT_GST_RATE', 18.0))
    DEFAULT_HSN_SAC = '84733099'  # computer parts
    QUOTATION_VALIDITY_DAYS = int(os.environ.get('QUOTATION_VALIDITY_DAYS', 15))

    # Quiet periods, in seconds
    EDIT_DEBOUNCE = float(os.environ.get('EDIT_DEBOUNCE', 0.3))
    PRINT_DELAY = float(os.environ.get('PRINT_DELAY', 0.5))

    DEFAULT_BUSINESS = {
        "name": "EmpressPC",
        "address": "123 Tech Street, Lucknow, UP 226001",
        "phone": "+91 9876543210",
        "email": "contact@empresspc.in",
        "gstin": "GSTIN1234567890",
        "logo": "/logo.png",
    }

    DEFAULT_TERMS = (
        "1. Prices are valid for the mentioned period only.\n"
        "2. Delivery within 3-5 working days after payment confirmation."
    )
