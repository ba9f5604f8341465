"""
RaktMap - Blood Request Coordination
Long-running Flask server: blood request API plus the built frontend.

Run with `python app.py`, or `flask --app app run`.
"""
import os

from raktmap import create_app

app = create_app()

# ============== MAIN ==============

if __name__ == '__main__':
    app.run(debug=os.environ.get('FLASK_DEBUG') == '1', host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
