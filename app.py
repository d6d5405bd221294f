"""
Caption AI Flask Application: photo upload, caption generation, history, settings
"""
import os
from functools import wraps

from flask import Flask, render_template, request, jsonify, session, redirect, url_for
from werkzeug.exceptions import RequestEntityTooLarge

import config
import options
from services.auth import AuthService, UserSession
from services.caption_generator import CaptionGenerator
from services.errors import AuthError, BackendError, CaptionError, SessionExpired
from services.history import (
    HistoryStore, build_history_row, can_generate, remaining_today
)
from services.models import GenerationRequest
from services.profiles import ProfileStore
from services.storage import ImageStorage


# =============================================================================
# Flask App Setup
# =============================================================================

app = Flask(__name__)
app.secret_key = config.APP_SECRET_KEY
app.config['MAX_CONTENT_LENGTH'] = config.MAX_CONTENT_LENGTH

# Service clients
generator = CaptionGenerator()
auth_service = AuthService()
history_store = HistoryStore()
profile_store = ProfileStore()
image_storage = ImageStorage()

DELETE_DENIED_MESSAGE = (
    'Delete failed: You may not have permission to delete this item or it was already removed.'
)


# =============================================================================
# Utility Functions
# =============================================================================

def current_user():
    """Return the signed-in UserSession for this request, or None."""
    return UserSession.from_session(session.get('user'))


def login_required(api=False):
    """Pass the signed-in user to the view as `user`; otherwise 401 or redirect to login.

    Tokens refreshed during the view are written back to the session. A session
    that can no longer be refreshed is cleared and treated as logged out.
    """
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            user = current_user()
            if user is None:
                if api:
                    return jsonify({'error': 'You must be logged in'}), 401
                return redirect(url_for('login'))

            try:
                response = view(*args, user=user, **kwargs)
            except SessionExpired as e:
                app.logger.info('Session expired for %s', user.user_id)
                session.clear()
                if api:
                    return jsonify({'error': e.message}), 401
                return redirect(url_for('login'))

            if user.to_session() != session.get('user'):
                session['user'] = user.to_session()
            return response
        return wrapped
    return decorator


def usage_for(user):
    """Today's generation count for user, with the derived quota fields."""
    count = history_store.count_today(user)
    return {
        'generations_today': count,
        'limit': config.DAILY_LIMIT,
        'remaining': remaining_today(count),
        'can_generate': can_generate(count),
    }


def caption_error_response(error):
    app.logger.warning('Generation failed: %s', error.message)
    return jsonify(error.to_dict(include_raw=config.EXPOSE_RAW_RESPONSE)), error.status_code


@app.errorhandler(RequestEntityTooLarge)
def file_too_large(e):
    return jsonify({'error': 'Image is too large'}), 413


# =============================================================================
# Landing / Auth Routes
# =============================================================================

@app.route('/')
def index():
    """Landing page."""
    return render_template('index.html', user=current_user())


@app.route('/login', methods=['GET', 'POST'])
def login():
    if request.method == 'GET':
        if current_user():
            return redirect(url_for('dashboard'))
        return render_template('login.html')

    email = request.form.get('email', '').strip()
    password = request.form.get('password', '')

    try:
        user = auth_service.sign_in(email, password)
    except AuthError as e:
        return render_template('login.html', error=e.message, email=email), 401

    session.clear()
    session['user'] = user.to_session()
    return redirect(url_for('dashboard'))


@app.route('/signup', methods=['GET', 'POST'])
def signup():
    if request.method == 'GET':
        return render_template('signup.html')

    full_name = request.form.get('full_name', '').strip()
    email = request.form.get('email', '').strip()
    password = request.form.get('password', '')

    try:
        user = auth_service.sign_up(email, password, full_name)
    except AuthError as e:
        return render_template('signup.html', error=e.message, email=email, full_name=full_name), 400

    if user is None:
        return render_template('login.html', message='Check your email to confirm your account, then log in.')

    session.clear()
    session['user'] = user.to_session()
    return redirect(url_for('dashboard'))


@app.route('/logout', methods=['POST'])
def logout():
    user = current_user()
    if user:
        try:
            auth_service.sign_out(user)
        except AuthError as e:
            app.logger.warning('Sign out failed for %s: %s', user.user_id, e.message)
    session.clear()
    return redirect(url_for('index'))


# =============================================================================
# Dashboard Routes
# =============================================================================

@app.route('/app')
@login_required()
def dashboard(user):
    """Upload + configure + results page."""
    settings = dict(options.DEFAULT_SETTINGS)
    error = None

    try:
        settings['language'] = profile_store.get_default_language(user)
        usage = usage_for(user)
    except BackendError as e:
        app.logger.error('Could not load dashboard data for %s: %s', user.user_id, e.message)
        settings.setdefault('language', config.DEFAULT_LANGUAGE)
        usage = {'generations_today': 0, 'limit': config.DAILY_LIMIT,
                 'remaining': config.DAILY_LIMIT, 'can_generate': True}
        error = e.message

    return render_template(
        'app.html',
        user=user,
        settings=settings,
        usage=usage,
        error=error,
        goals=options.GOALS,
        platforms=options.PLATFORMS,
        audiences=options.AUDIENCES,
        languages=options.LANGUAGES,
        lengths=options.LENGTHS,
        emojis=options.EMOJIS,
        loading_messages=config.LOADING_MESSAGES,
        loading_interval=config.LOADING_MESSAGE_INTERVAL_MS,
    )


@app.route('/upload', methods=['POST'])
@login_required(api=True)
def upload(user):
    """Upload a photo to storage and return its public URL."""
    if 'image' not in request.files:
        return jsonify({'error': 'No image file provided'}), 400

    try:
        image_url = image_storage.upload(user, request.files['image'])
    except CaptionError as e:
        return jsonify({'error': e.message}), e.status_code
    except BackendError as e:
        app.logger.error('Upload failed for %s: %s', user.user_id, e.message)
        return jsonify({'error': e.message or 'Error uploading file'}), 500

    return jsonify({'success': True, 'image_url': image_url})


@app.route('/usage', methods=['GET'])
@login_required(api=True)
def usage(user):
    try:
        return jsonify(usage_for(user))
    except BackendError as e:
        return jsonify({'error': e.message}), 500


@app.route('/generate', methods=['POST'])
@login_required(api=True)
def generate_for_user(user):
    """Dashboard generation: daily quota check, generation, then a history entry."""
    try:
        gen_request = GenerationRequest.from_payload(request.get_json(silent=True))
    except CaptionError as e:
        return caption_error_response(e)

    # Advisory: count and insert are separate calls and can race
    try:
        count = history_store.count_today(user)
    except BackendError as e:
        return jsonify({'error': e.message}), 500
    if not can_generate(count):
        return jsonify({'error': 'Daily limit reached', 'remaining': 0}), 429

    try:
        result = generator.generate(gen_request)
    except CaptionError as e:
        return caption_error_response(e)

    entry = None
    try:
        entry = history_store.insert(user, build_history_row(user, gen_request, result))
        count += 1
    except BackendError as e:
        app.logger.error('Could not save generation for %s: %s', user.user_id, e.message)

    results = result.to_dict()
    return jsonify({
        'result': results,
        'html': render_template('_results.html', results=results, key='latest'),
        'entry_id': entry.get('id') if entry else None,
        'remaining': remaining_today(count),
        'can_generate': can_generate(count),
    })


# =============================================================================
# History / Settings Routes
# =============================================================================

@app.route('/history', methods=['GET'])
@login_required()
def history(user):
    error = None
    try:
        entries = history_store.list(user)
    except BackendError as e:
        app.logger.error('Could not load history for %s: %s', user.user_id, e.message)
        entries = []
        error = e.message

    return render_template('history.html', user=user, entries=entries, error=error)


@app.route('/history/<entry_id>', methods=['DELETE'])
@login_required(api=True)
def delete_history_entry(entry_id, user):
    try:
        affected = history_store.delete(user, entry_id)
    except BackendError as e:
        return jsonify({'error': f'Could not delete item: {e.message}'}), 500

    if affected == 0:
        app.logger.warning('Delete of %s by %s affected no rows', entry_id, user.user_id)
        return jsonify({'error': DELETE_DENIED_MESSAGE}), 403

    return jsonify({'success': True, 'deleted': entry_id})


@app.route('/history/clear', methods=['POST'])
@login_required(api=True)
def clear_history(user):
    try:
        deleted = history_store.clear(user)
    except BackendError as e:
        app.logger.error('Could not clear history for %s: %s', user.user_id, e.message)
        return jsonify({'error': 'Error clearing history'}), 500
    return jsonify({'success': True, 'deleted': deleted, 'message': 'All history cleared!'})


@app.route('/settings', methods=['GET', 'POST'])
@login_required()
def settings_page(user):
    if request.method == 'POST':
        data = request.get_json(silent=True) or request.form
        language = (data.get('default_language') or '').strip()
        if language not in options.LANGUAGES:
            return jsonify({'error': 'Unsupported language'}), 400
        try:
            profile_store.save_default_language(user, language)
        except BackendError as e:
            app.logger.error('Could not save settings for %s: %s', user.user_id, e.message)
            return jsonify({'error': 'Error saving settings'}), 500
        return jsonify({'success': True, 'message': 'Settings saved successfully!'})

    try:
        default_language = profile_store.get_default_language(user)
    except BackendError as e:
        app.logger.error('Could not load settings for %s: %s', user.user_id, e.message)
        default_language = config.DEFAULT_LANGUAGE

    return render_template('settings.html', user=user, default_language=default_language,
                           languages=options.LANGUAGES)


# =============================================================================
# Public API
# =============================================================================

@app.route('/api/generate', methods=['POST'])
def api_generate():
    """Generate captions for an image URL. Returns the GenerationResult JSON."""
    try:
        gen_request = GenerationRequest.from_payload(request.get_json(silent=True))
        result = generator.generate(gen_request)
    except CaptionError as e:
        return caption_error_response(e)

    return jsonify(result.to_dict())


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == '__main__':
    debug_mode = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'
    port = int(os.getenv('PORT', 5000))
    app.run(debug=debug_mode, host='0.0.0.0', port=port)
