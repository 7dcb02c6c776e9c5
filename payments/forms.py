from django import forms


class CreatePaymentForm(forms.Form):
    """Validate a payment-link request for one student."""

    amount = forms.DecimalField(decimal_places=2, max_digits=12, min_value=1)
    student_name = forms.CharField(max_length=128)
    student_id = forms.CharField(max_length=64)
    student_email = forms.EmailField()
    callback_url = forms.URLField(required=False)
