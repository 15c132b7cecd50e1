"""
URL configuration for the rental marketplace backend.

Only the Django admin is routed: bookings, ledger entries, deposit holds,
fund freezes and payouts are inspected there. Booking, ledger and payout
operations are exposed as services (bookings.services, payments.services).
"""

from django.contrib import admin
from django.urls import path

urlpatterns = [
    path("admin/", admin.site.urls),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Rentals Admin"
admin.site.site_title = "Rentals Admin Portal"
admin.site.index_title = "Bookings and payments"
