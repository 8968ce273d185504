"""
Stripe integration: one-time Checkout for lifetime access and the webhook
that turns a completed checkout into has_paid = true.
"""
import logging

import stripe

import config
import supabase_rest

logger = logging.getLogger("conceptai.payments")

CHECKOUT_COMPLETED = 'checkout.session.completed'


def _configure():
    stripe.api_key = config.STRIPE_SECRET_KEY
    if config.STRIPE_API_VERSION:
        stripe.api_version = config.STRIPE_API_VERSION


def create_checkout_session(user):
    """
    WHAT THIS FUNCTION DOES:
    Creates a Stripe Checkout page for the single lifetime-access price.
    The user's id rides along as client_reference_id so the webhook knows
    whose profile to unlock once the payment clears.
    """
    _configure()
    return stripe.checkout.Session.create(
        payment_method_types=['card'],
        line_items=[{
            'price': config.STRIPE_PRICE_ID,
            'quantity': 1,
        }],
        mode='payment',
        success_url=f"{config.APP_URL}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{config.APP_URL}/dashboard",
        client_reference_id=user['id'],
        customer_email=user.get('email'),
    )


def construct_event(payload, signature):
    """Verify the Stripe-Signature header. Raises stripe.SignatureVerificationError."""
    _configure()
    return stripe.Webhook.construct_event(payload, signature, config.STRIPE_WEBHOOK_SECRET)


def handle_event(event):
    """
    Apply a verified webhook event. Only checkout.session.completed matters;
    it flips has_paid for the referenced user. Returns that user id, or None
    when the event was ignored.
    """
    if event.type != CHECKOUT_COMPLETED:
        logger.debug("Ignoring Stripe event %s", event.type)
        return None

    session = event.data.object
    user_id = getattr(session, 'client_reference_id', None)
    if not user_id:
        logger.warning("Checkout session %s has no client_reference_id", getattr(session, 'id', '?'))
        return None

    supabase_rest.mark_paid(user_id)
    return user_id


def confirm_checkout_session(session_id, user_id):
    """
    Double-check a finished checkout when the user lands on the success page,
    in case the webhook has not arrived yet. Only sessions that belong to the
    caller and are fully paid unlock access.
    """
    _configure()
    session = stripe.checkout.Session.retrieve(session_id)

    if session.client_reference_id != user_id:
        logger.warning("Session %s does not belong to user %s", session_id, user_id)
        return False
    if session.status != 'complete' or session.payment_status != 'paid':
        return False

    supabase_rest.mark_paid(user_id)
    return True
