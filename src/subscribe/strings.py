"""User-facing strings for pages and confirmation emails (English and French).

Message templates use ``{email}``, ``{url}``, ``{list_name}`` and ``{count}``
placeholders. Values interpolated into HTML must be escaped by the caller.
"""

from copy import deepcopy
from typing import Any

DEFAULT_LANGUAGE = "en"

UIStrings = dict[str, dict[str, str]]

UI_STRINGS: dict[str, UIStrings] = {
    "en": {
        "page": {
            "title": "Mailing list subscription",
            "heading": "Subscribe to our mailing list",
            "subheading": "Join our mailing list to receive updates and news",
        },
        "form": {
            "email_label": "Email",
            "email_placeholder": "you@example.com",
            "website_label": "Website (leave this empty)",
            "subscribe_button": "Subscribe",
            "unsubscribe_button": "Unsubscribe",
        },
        "messages": {
            "back_to_subscription": "Back to subscription",
            "already_subscribed": "Already subscribed",
            "already_subscribed_message": "The email <strong>{email}</strong> is already subscribed.",
            "not_subscribed": "Warning: not subscribed",
            "not_subscribed_message": (
                "The email <strong>{email}</strong> is not currently subscribed. "
                "No action was taken."
            ),
            "operation_failed": "Operation failed",
            "operation_failed_message": "The operation could not be completed. Please try again later.",
            "rate_limited": "Rate limit exceeded",
            "rate_limited_message": (
                "Too many subscription attempts from your IP address. Please try again later."
            ),
            "invalid_email": "Invalid email format",
            "invalid_email_message": (
                "The email <strong>{email}</strong> appears to be invalid. "
                "Please check the format and try again."
            ),
            "spam_detected": "Submission rejected",
            "spam_detected_message": (
                "Your submission has been identified as potential spam and has been rejected."
            ),
            "csrf_invalid": "Security validation failed",
            "csrf_invalid_message": (
                "Security token validation failed. This could happen if you used an old form "
                "or if your session expired."
            ),
            "unknown_action": "Unknown action",
            "unknown_action_message": "Unknown action requested. Please try again.",
            "server_error": "Operation failed",
            "server_error_message": "An unexpected error occurred. Please try again later.",
            "confirmation_sent": "Confirmation email sent",
            "confirmation_sent_message": (
                "A confirmation email has been sent to <strong>{email}</strong>. Please check "
                "your inbox and click the confirmation link to complete your request."
            ),
            "confirmation_error": "Confirmation error",
            "confirmation_error_message": (
                "The confirmation link is invalid or has expired. Please try subscribing again."
            ),
            "confirmation_failed": "Confirmation email could not be sent",
            "confirmation_failed_message": (
                "We couldn't send a confirmation email to <strong>{email}</strong>. "
                "Please try again later."
            ),
            "tokens": "Available confirmation tokens",
            "tokens_message": "Currently there are {count} pending confirmation tokens.",
            "subscription_confirmation_success": "Subscription confirmed",
            "subscription_confirmation_success_message": (
                "Thank you! Your email <strong>{email}</strong> has been successfully added "
                "to our mailing list."
            ),
            "unsubscription_confirmation_success": "Unsubscription confirmed",
            "unsubscription_confirmation_success_message": (
                "Your unsubscription request for <strong>{email}</strong> has been processed."
            ),
            "not_found": "Not Found",
            "not_found_message": "Resource not found.",
            "method_not_allowed": "Method Not Allowed",
            "method_not_allowed_message": "This page does not accept that kind of request.",
            "bad_request": "Bad Request",
            "bad_request_message": "The request could not be processed.",
        },
        "emails": {
            "subscribe_subject": "[{list_name}] Please confirm your subscription",
            "subscribe_body_text": (
                "Thank you for subscribing to our mailing list with your email address: "
                "{email}.\n\nPlease confirm your subscription by clicking on this link:\n\n"
                "{url}\n\nIf you did not request this subscription, you can ignore this email."
            ),
            "subscribe_body_html": (
                "<html><body><p>Thank you for subscribing to our mailing list with your email "
                "address: <strong>{email}</strong>.</p><p>Please confirm your subscription by "
                'clicking on the following link:</p><p><a href="{url}">Confirm your '
                "subscription</a></p><p>If you did not request this subscription, you can "
                "ignore this email.</p></body></html>"
            ),
            "unsubscribe_subject": "[{list_name}] Please confirm your unsubscription",
            "unsubscribe_body_text": (
                "You have requested to unsubscribe from our mailing list with the email "
                "address: {email}.\n\nPlease confirm your unsubscription by clicking on the "
                "following link:\n\n{url}\n\nIf you did not request this unsubscription, you "
                "can ignore this email."
            ),
            "unsubscribe_body_html": (
                "<html><body><p>You have requested to unsubscribe from our mailing list with "
                "the email address: <strong>{email}</strong>.</p><p>Please confirm your "
                'unsubscription by clicking on the following link:</p><p><a href="{url}">'
                "Confirm your unsubscription</a></p><p>If you did not request this "
                "unsubscription, you can ignore this email.</p></body></html>"
            ),
        },
    },
    "fr": {
        "page": {
            "title": "Abonnement par e-mail",
            "heading": "Abonnement à notre liste de diffusion",
            "subheading": "Rejoignez notre liste pour recevoir des nouvelles",
        },
        "form": {
            "email_label": "E-mail",
            "email_placeholder": "vous@exemple.com",
            "website_label": "Site web (laissez ce champ vide)",
            "subscribe_button": "Abonnement",
            "unsubscribe_button": "Désabonnement",
        },
        "messages": {
            "back_to_subscription": "Retour à l'accueil",
            "already_subscribed": "Déjà abonné",
            "already_subscribed_message": "L'adresse e-mail <strong>{email}</strong> est déjà abonnée.",
            "not_subscribed": "Attention : non abonné",
            "not_subscribed_message": (
                "L'adresse e-mail <strong>{email}</strong> n'est pas actuellement abonnée. "
                "Aucune action n'a été effectuée."
            ),
            "operation_failed": "Échec de l'opération",
            "operation_failed_message": (
                "L'opération n'a pas pu être effectuée. Veuillez réessayer plus tard."
            ),
            "rate_limited": "Limite de taux dépassée",
            "rate_limited_message": (
                "Trop de tentatives d'abonnement depuis votre adresse IP. "
                "Veuillez réessayer plus tard."
            ),
            "invalid_email": "Format d'e-mail invalide",
            "invalid_email_message": (
                "L'adresse e-mail <strong>{email}</strong> semble être invalide. "
                "Veuillez vérifier le format et réessayer."
            ),
            "spam_detected": "Soumission rejetée",
            "spam_detected_message": (
                "Votre soumission a été identifiée comme spam potentiel et a été rejetée."
            ),
            "csrf_invalid": "Échec de validation de sécurité",
            "csrf_invalid_message": (
                "La validation du jeton de sécurité a échoué. Cela peut se produire si vous "
                "avez utilisé un ancien formulaire ou si votre session a expiré."
            ),
            "unknown_action": "Action inconnue",
            "unknown_action_message": "Action inconnue demandée. Veuillez réessayer.",
            "server_error": "Échec de l'opération",
            "server_error_message": (
                "Une erreur inattendue s'est produite. Veuillez réessayer plus tard."
            ),
            "confirmation_sent": "Email de confirmation envoyé",
            "confirmation_sent_message": (
                "Un email de confirmation a été envoyé à <strong>{email}</strong>.<br/>"
                "Veuillez vérifier votre boîte de réception et cliquer sur le lien de "
                "confirmation pour finaliser votre demande."
            ),
            "confirmation_error": "Erreur de confirmation",
            "confirmation_error_message": (
                "Le lien de confirmation n'est pas valide ou a expiré.<br/>"
                "Veuillez essayer de vous abonner à nouveau."
            ),
            "confirmation_failed": "L'email de confirmation n'a pas pu être envoyé",
            "confirmation_failed_message": (
                "Nous n'avons pas pu envoyer un email de confirmation à "
                "<strong>{email}</strong>.<br/>Veuillez réessayer plus tard."
            ),
            "tokens": "Jetons de confirmation disponibles",
            "tokens_message": "Il y a actuellement {count} jetons de confirmation en attente.",
            "subscription_confirmation_success": "Abonnement confirmé",
            "subscription_confirmation_success_message": (
                "Merci ! Votre adresse e-mail <strong>{email}</strong> a été ajoutée à notre "
                "liste de diffusion."
            ),
            "unsubscription_confirmation_success": "Désabonnement confirmé",
            "unsubscription_confirmation_success_message": (
                "Votre demande de désabonnement pour <strong>{email}</strong> a été traitée."
            ),
            "not_found": "Page introuvable",
            "not_found_message": "La ressource demandée n'existe pas.",
            "method_not_allowed": "Méthode non autorisée",
            "method_not_allowed_message": "Cette page n'accepte pas ce type de requête.",
            "bad_request": "Requête invalide",
            "bad_request_message": "La requête n'a pas pu être traitée.",
        },
        "emails": {
            "subscribe_subject": "[{list_name}] Veuillez confirmer votre abonnement",
            "subscribe_body_text": (
                "Merci de vous être abonné à notre liste de diffusion avec votre adresse "
                "e-mail : {email}.\n\nVeuillez confirmer votre abonnement en cliquant sur le "
                "lien suivant :\n\n{url}\n\nSi vous n'avez pas demandé cet abonnement, vous "
                "pouvez ignorer cet e-mail."
            ),
            "subscribe_body_html": (
                "<html><body><p>Merci de vous être abonné à notre liste de diffusion avec "
                "votre adresse e-mail : <strong>{email}</strong>.</p><p>Veuillez confirmer "
                "votre abonnement en cliquant sur le lien suivant :</p><p>"
                '<a href="{url}">Confirmer votre abonnement</a></p><p>Si vous n\'avez pas '
                "demandé cet abonnement, vous pouvez ignorer cet e-mail.</p></body></html>"
            ),
            "unsubscribe_subject": "[{list_name}] Veuillez confirmer votre désabonnement",
            "unsubscribe_body_text": (
                "Vous avez demandé à vous désabonner de notre liste de diffusion avec "
                "l'adresse e-mail : {email}.\n\nVeuillez confirmer votre désabonnement en "
                "cliquant sur le lien suivant :\n\n{url}\n\nSi vous n'avez pas demandé ce "
                "désabonnement, vous pouvez ignorer cet e-mail."
            ),
            "unsubscribe_body_html": (
                "<html><body><p>Vous avez demandé à vous désabonner de notre liste de "
                "diffusion avec l'adresse e-mail : <strong>{email}</strong>.</p><p>Veuillez "
                "confirmer votre désabonnement en cliquant sur le lien suivant :</p><p>"
                '<a href="{url}">Confirmer votre désabonnement</a></p><p>Si vous n\'avez '
                "pas demandé ce désabonnement, vous pouvez ignorer cet e-mail.</p>"
                "</body></html>"
            ),
        },
    },
}

SUPPORTED_LANGUAGES = tuple(UI_STRINGS)


def determine_language(accept_language: str | None) -> str:
    """Pick a UI language from an Accept-Language header."""
    if accept_language and "fr" in accept_language.lower():
        return "fr"
    return DEFAULT_LANGUAGE


def merge_ui_strings(
    base: dict[str, UIStrings],
    overrides: dict[str, dict[str, Any]] | None,
) -> dict[str, UIStrings]:
    """Merge per-language overrides into a copy of ``base``.

    Overrides are merged section by section, so a config file can replace a
    single message without restating the rest. New languages start from the
    English strings.
    """
    merged = deepcopy(base)
    for lang, sections in (overrides or {}).items():
        target = merged.setdefault(lang, deepcopy(merged[DEFAULT_LANGUAGE]))
        for section, values in sections.items():
            target.setdefault(section, {}).update(values)
    return merged


def get_strings(ui_strings: dict[str, UIStrings], lang: str) -> UIStrings:
    """Strings for ``lang``, falling back to English for missing languages."""
    return ui_strings.get(lang) or ui_strings[DEFAULT_LANGUAGE]
