# === IMPORT STATEMENTS ===
import logging
from functools import wraps

import stripe
from flask import Flask, g, jsonify, redirect, request
from flask_cors import CORS

import config
import gemini
import payments
import supabase_rest

# === INITIALIZE SERVICES ===

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
)
logger = logging.getLogger("conceptai")

# Create the main Flask web application
app = Flask(__name__)

# The frontend lives on its own origin and sends the session cookie along
CORS(app, resources={r"/api/*": {"origins": config.CORS_ORIGINS}}, supports_credentials=True)


# === AUTH HELPERS ===

def _access_token():
    """Bearer token from the Authorization header, else the session cookie."""
    auth_header = request.headers.get('Authorization', '')
    scheme, _, token = auth_header.partition(' ')
    if scheme.lower() == 'bearer' and token.strip():
        return token.strip()
    return request.cookies.get(config.AUTH_COOKIE_NAME)


def _json_body():
    """The request body as a dict. Anything but a JSON object counts as empty."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def require_user(view):
    """
    WHAT THIS DECORATOR DOES:
    Resolves the caller's Supabase session before the endpoint runs.
    Anonymous or expired sessions get a 401; the signed-in user and their
    token are put on flask.g for the endpoint to use.
    """
    @wraps(view)
    def wrapper(*args, **kwargs):
        token = _access_token()
        try:
            user = supabase_rest.get_user(token)
        except supabase_rest.SupabaseError as e:
            logger.error("Auth lookup failed: %s", e)
            return jsonify({'error': 'Unauthorized'}), 401
        if not user:
            return jsonify({'error': 'Unauthorized'}), 401
        g.user = user
        g.access_token = token
        return view(*args, **kwargs)
    return wrapper


# === API ENDPOINTS ===

@app.route('/')
def health_check():
    """
    Simple "are you there?" endpoint used by uptime checks.

    URL: GET /
    """
    return jsonify({'status': 'API is running'})


@app.route('/api/styles', methods=['GET'])
def list_styles():
    return jsonify(gemini.EXPLANATION_STYLES)


@app.route('/api/profile', methods=['GET'])
@require_user
def get_profile():
    """
    WHAT THIS ENDPOINT DOES:
    Tells the dashboard where the user stands: paid or not, key verified or
    not. The stored Gemini key itself never leaves the server.

    URL: GET /api/profile
    """
    try:
        profile = supabase_rest.get_profile(g.access_token, g.user['id']) or {}
    except supabase_rest.SupabaseError as e:
        logger.error("Profile lookup failed: %s", e)
        return jsonify({'error': 'Failed to load profile'}), 500

    return jsonify({
        'id': g.user['id'],
        'email': g.user.get('email'),
        'has_paid': bool(profile.get('has_paid')),
        'gemini_key_verified': bool(profile.get('gemini_key_verified')),
        'has_gemini_key': bool(profile.get('gemini_api_key')),
    })


@app.route('/api/checkout', methods=['POST'])
@require_user
def create_checkout_session():
    """
    WHAT THIS ENDPOINT DOES:
    Starts the one-time lifetime payment. A plain HTML form post is sent
    straight to Stripe with a 303; API callers get the URL back as JSON.

    URL: POST /api/checkout
    RETURNS: 303 redirect, or {"checkout_url": ...}
    """
    try:
        session = payments.create_checkout_session(g.user)
    except stripe.StripeError as e:
        logger.error("Stripe checkout error: %s", e)
        return jsonify({'error': 'Failed to create checkout session'}), 500

    if request.mimetype in ('application/x-www-form-urlencoded', 'multipart/form-data'):
        return redirect(session.url, code=303)
    return jsonify({'checkout_url': session.url})


@app.route('/api/webhook', methods=['POST'])
def stripe_webhook():
    """
    WHAT THIS ENDPOINT DOES:
    Stripe calls this when a payment event happens. A completed checkout
    unlocks the user's account (has_paid = true).

    URL: POST /api/webhook
    CALLED BY: Stripe's servers (not by users directly)

    Database failures answer 500 so Stripe retries the delivery.
    """
    payload = request.get_data()
    sig_header = request.headers.get('Stripe-Signature')
    if not sig_header:
        return jsonify({'error': 'Invalid signature'}), 400

    try:
        event = payments.construct_event(payload, sig_header)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("Webhook signature verification failed: %s", e)
        return jsonify({'error': 'Invalid signature'}), 400

    try:
        payments.handle_event(event)
    except supabase_rest.SupabaseError as e:
        logger.error("Error updating user profile: %s", e)
        return jsonify({'error': 'Database update failed'}), 500
    except Exception:
        logger.exception("Error processing webhook %s", getattr(event, 'id', '?'))
        return jsonify({'error': 'Webhook processing failed'}), 500

    return jsonify({'received': True})


@app.route('/api/payment-success', methods=['POST'])
@require_user
def confirm_payment():
    """
    WHAT THIS ENDPOINT DOES:
    Called by the payment-success page with the session_id Stripe put in the
    redirect URL. Confirms the payment with Stripe directly so access is
    granted even if the webhook is late.

    URL: POST /api/payment-success
    REQUIRES: session_id in the request body
    """
    data = _json_body()
    session_id = data.get('session_id')
    if not session_id:
        return jsonify({'error': 'session_id is required'}), 400

    try:
        has_paid = payments.confirm_checkout_session(session_id, g.user['id'])
    except stripe.InvalidRequestError as e:
        logger.warning("Unknown checkout session %s: %s", session_id, e)
        return jsonify({'error': 'Invalid session_id'}), 400
    except stripe.StripeError as e:
        logger.error("Stripe session lookup failed: %s", e)
        return jsonify({'error': 'Failed to confirm payment'}), 500
    except supabase_rest.SupabaseError as e:
        logger.error("Error updating user profile: %s", e)
        return jsonify({'error': 'Failed to confirm payment'}), 500

    return jsonify({'has_paid': has_paid})


@app.route('/api/verify-gemini', methods=['POST'])
@require_user
def verify_gemini():
    """
    WHAT THIS ENDPOINT DOES:
    Checks a Gemini API key by sending it a tiny prompt. If Gemini answers,
    the key is saved to the user's profile and marked verified.

    URL: POST /api/verify-gemini
    REQUIRES: apiKey in the request body
    """
    data = _json_body()
    api_key = data.get('apiKey')
    api_key = api_key.strip() if isinstance(api_key, str) else ''
    if not api_key:
        return jsonify({'error': 'API key is required'}), 400

    try:
        verified = gemini.verify_api_key(api_key)
    except gemini.GeminiError as e:
        logger.warning("Gemini verification error: %s", e)
        return jsonify({'error': 'Invalid API key or API error'}), 400

    if not verified:
        return jsonify({'error': 'Invalid API key'}), 400

    try:
        supabase_rest.update_profile(g.access_token, g.user['id'], {
            'gemini_api_key': api_key,
            'gemini_key_verified': True,
        })
    except supabase_rest.SupabaseError as e:
        logger.error("Verification error: %s", e)
        return jsonify({'error': 'Failed to verify API key'}), 500

    return jsonify({'success': True, 'message': 'API key verified'})


@app.route('/api/gemini-key', methods=['PUT'])
@require_user
def save_gemini_key():
    """Save a key without checking it; it stays unverified until /api/verify-gemini."""
    data = _json_body()
    api_key = data.get('apiKey')
    api_key = api_key.strip() if isinstance(api_key, str) else ''
    if not api_key:
        return jsonify({'error': 'Please enter a valid Gemini API key'}), 400

    try:
        supabase_rest.update_profile(g.access_token, g.user['id'], {
            'gemini_api_key': api_key,
            'gemini_key_verified': False,
        })
    except supabase_rest.SupabaseError as e:
        logger.error("Saving Gemini key failed: %s", e)
        return jsonify({'error': 'Failed to save key'}), 500

    return jsonify({'success': True, 'message': 'API key saved. Please verify it now.'})


@app.route('/api/explain', methods=['POST'])
@require_user
def explain():
    """
    WHAT THIS ENDPOINT DOES:
    The main feature. Takes a concept and a style, wraps the concept in the
    style's instruction and asks Gemini (with the user's own key) to explain it.

    URL: POST /api/explain
    REQUIRES: paid account, verified Gemini key, concept + style in the body
    RETURNS: {"explanation": ...}
    """
    try:
        # STEP 1: Access checks, in order: paid, then key
        profile = supabase_rest.get_profile(g.access_token, g.user['id']) or {}
        if not profile.get('has_paid'):
            return jsonify({'error': 'Payment required'}), 403
        if not profile.get('gemini_key_verified') or not profile.get('gemini_api_key'):
            return jsonify({'error': 'Gemini API key not configured'}), 403

        # STEP 2: Validate the request body
        data = _json_body()
        concept = data.get('concept')
        style = data.get('style')
        if not (isinstance(concept, str) and concept) or not (isinstance(style, str) and style):
            return jsonify({'error': 'Concept and style are required'}), 400

        # STEP 3: Ask Gemini
        try:
            explanation = gemini.explain(profile['gemini_api_key'], concept, style)
        except gemini.GeminiError as e:
            logger.error("Gemini API error: %s", e)
            return jsonify({'error': 'Failed to generate explanation. Please check your API key.'}), 500

        return jsonify({'explanation': explanation})

    except supabase_rest.SupabaseError as e:
        logger.error("Explain error: %s", e)
        return jsonify({'error': 'Failed to generate explanation'}), 500


@app.route('/api/logout', methods=['POST'])
@require_user
def logout():
    try:
        supabase_rest.sign_out(g.access_token)
    except supabase_rest.SupabaseError as e:
        logger.error("Sign out failed: %s", e)
        return jsonify({'error': 'Failed to sign out'}), 500
    return jsonify({'success': True})


# === MAIN EXECUTION ===
if __name__ == '__main__':
    app.run(debug=config.LOG_LEVEL == 'DEBUG')
