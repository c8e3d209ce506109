"""Payment QR codes in the Russian unified payment format."""

from decimal import Decimal
from io import BytesIO
from typing import Optional

import qrcode

from apps.billing.models import ZERO, PaymentRequisites
from apps.registry.models import Plot

from .period_dates import current_period
from .reconciliation import plot_debt
from .requisites import get_active_requisites


class PaymentQRGenerator:
    """
    Generate payment QR codes readable by Russian banking apps.

    The payload follows ГОСТ Р 56042-2014: a ``ST00012`` header followed by
    ``Key=Value`` pairs separated by ``|``. Scanning the code pre-fills the
    recipient, bank details, amount and purpose.

    Format::

        ST00012|Name=<recipient>|PersonalAcc=<account>|BankName=<bank>|BIC=<bik>
            |CorrespAcc=<corr>[|PayeeINN=<inn>][|KPP=<kpp>][|Sum=<kopecks>]
            |Purpose=<purpose>[|PayerName=<payer>]

    Fields:
        - Sum: amount in kopecks, omitted when zero so the payer types it in
        - Purpose / PayerName: free text, ``|`` and line breaks become spaces

    Methods:
        build_payment_string: Create the payload string.
        generate_qr_image: Render the payload as a QR image.
        render_png: Render the payload to PNG bytes.
        generate_for_plot: Full generation for a plot's outstanding debt.

    Example:
        Payload for a membership fee::

            payload = PaymentQRGenerator.build_payment_string(
                requisites=get_active_requisites(),
                amount=Decimal('1500.00'),
                purpose='Членский взнос за участок 14, 2024-05',
            )
            png = PaymentQRGenerator.render_png(payload)
    """

    HEADER = 'ST00012'

    @staticmethod
    def clean_text(value) -> str:
        """Drop separators and line breaks from free text."""
        text = str(value or '')
        for char in ('|', '\r\n', '\n', '\r'):
            text = text.replace(char, ' ')
        return ' '.join(text.split())

    @staticmethod
    def build_payment_string(
        requisites: PaymentRequisites,
        amount: Optional[Decimal] = None,
        purpose: str = '',
        payer_name: str = ''
    ) -> str:
        """
        Build the ``ST00012`` payload.

        Args:
            requisites: Recipient bank details
            amount: Amount in roubles; zero or None leaves Sum out
            purpose: Payment purpose
            payer_name: Optional payer full name

        Returns:
            str: Payload ready for QR encoding.
        """
        clean = PaymentQRGenerator.clean_text
        parts = [
            PaymentQRGenerator.HEADER,
            f'Name={clean(requisites.recipient_name)}',
            f'PersonalAcc={requisites.account}',
            f'BankName={clean(requisites.bank_name)}',
            f'BIC={requisites.bik}',
            f'CorrespAcc={requisites.corr_account}',
        ]

        if requisites.inn:
            parts.append(f'PayeeINN={requisites.inn}')

        if requisites.kpp:
            parts.append(f'KPP={requisites.kpp}')

        kopecks = int((Decimal(amount or 0) * 100).quantize(Decimal('1')))
        if kopecks > 0:
            parts.append(f'Sum={kopecks}')

        parts.append(f'Purpose={clean(purpose)}')

        if payer_name:
            parts.append(f'PayerName={clean(payer_name)}')

        return '|'.join(parts)

    @staticmethod
    def generate_qr_image(payload: str):
        """
        Render a payload as a QR image.

        Error correction level M keeps codes readable from a printed receipt.

        Returns:
            PIL.Image.Image
        """
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(payload)
        qr.make(fit=True)
        return qr.make_image(fill_color="black", back_color="white")

    @staticmethod
    def render_png(payload: str) -> bytes:
        buffer = BytesIO()
        PaymentQRGenerator.generate_qr_image(payload).save(buffer, format='PNG')
        return buffer.getvalue()

    @staticmethod
    def generate_for_plot(plot: Plot, period: Optional[str] = None) -> dict:
        """
        Payload for paying off a plot's debt.

        The purpose comes from the requisites template, where ``{plot}``,
        ``{period}`` and ``{name}`` are replaced by the plot number, the
        period (current month when not given) and the primary owner.

        Returns:
            dict: {'payload', 'amount', 'purpose', 'payer_name'}

        Raises:
            RequisitesNotConfiguredError: No active requisites
        """
        requisites = get_active_requisites()
        owner = plot.get_primary_owner()
        payer_name = owner.full_name if owner else ''
        amount = plot_debt(plot.id, period)

        purpose = (
            requisites.purpose_template
            .replace('{plot}', plot.number or plot.label)
            .replace('{period}', period or current_period())
            .replace('{name}', payer_name)
            .strip()
        )

        payload = PaymentQRGenerator.build_payment_string(
            requisites=requisites,
            amount=amount if amount > ZERO else None,
            purpose=purpose,
            payer_name=payer_name,
        )
        return {'payload': payload, 'amount': amount, 'purpose': purpose, 'payer_name': payer_name}
