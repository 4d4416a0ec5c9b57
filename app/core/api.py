"""Standard JSON response envelope."""
from datetime import datetime
from typing import Dict, Any


class APIResponse:
    """Standard API response format."""

    @staticmethod
    def success(data: Any = None, message: str = None) -> Dict:
        """Create success response."""
        response = {
            'success': True,
            'timestamp': datetime.utcnow().isoformat()
        }

        if data is not None:
            response['data'] = data

        if message:
            response['message'] = message

        return response

    @staticmethod
    def error(message: str, code: str = None, details: Any = None) -> Dict:
        """Create error response."""
        response = {
            'success': False,
            'error': {
                'message': message,
                'timestamp': datetime.utcnow().isoformat()
            }
        }

        if code:
            response['error']['code'] = code

        if details:
            response['error']['details'] = details

        return response
