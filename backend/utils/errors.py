"""
Erreurs métier du flux checkout/coupons/commandes.
- InvalidInput: panier absent, vide ou mal formé (400).
- ProviderError: appel Stripe en échec (500).
- PersistenceError: lecture/écriture Supabase en échec (500).
- NotCompleted: règlement demandé sur une session non payée (réponse explicite, pas une erreur serveur).
"""


class CheckoutError(Exception):
    status_code = 500


class InvalidInput(CheckoutError):
    status_code = 400


class ProviderError(CheckoutError):
    pass


class PersistenceError(CheckoutError):
    pass


class NotCompleted(CheckoutError):
    def __init__(self, payment_status: str):
        super().__init__(f"Paiement non finalisé (payment_status={payment_status or 'inconnu'})")
        self.payment_status = payment_status
