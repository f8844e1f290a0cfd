import os

from dotenv import load_dotenv
from flask import Flask, jsonify, request, session

from sn.api import sn_bp
from sn.config import MAX_CONTENT_LENGTH, setup_logging

load_dotenv()
setup_logging(os.getenv('SN_LOG_LEVEL', 'INFO'))

app = Flask(__name__)
app.secret_key = os.getenv('SECRET_KEY', 'your-secret-key-here')

# Configuration
ACCESS_PASSWORD = os.getenv('ACCESS_PASSWORD', 'SIMPLIFY2025')

app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH
app.register_blueprint(sn_bp)


def is_authenticated():
    return session.get('authenticated', False)


@app.route('/')
def index():
    return jsonify({'service': 'simplify-notes', 'authenticated': is_authenticated()})


@app.route('/auth', methods=['POST'])
def authenticate():
    payload = request.get_json(silent=True) or {}
    password = request.form.get('password') or payload.get('password')
    if password == ACCESS_PASSWORD:
        session['authenticated'] = True
        return jsonify({'success': True})
    return jsonify({'error': 'Invalid password'}), 401


@app.route('/logout')
def logout():
    session.pop('authenticated', None)
    return jsonify({'success': True})


@app.errorhandler(413)
def too_large(_error):
    return jsonify({'error': 'File too large'}), 413


if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
