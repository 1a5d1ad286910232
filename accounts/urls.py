from django.urls import path
from .views import LoginView, RefreshView, MeView, RegisterUserView

app_name = 'accounts'

# mounted under /api/auth/
urlpatterns = [
    path('login/', LoginView.as_view(), name='token-obtain'),
    path('refresh/', RefreshView.as_view(), name='token-refresh'),
    path('me/', MeView.as_view(), name='me'),
    path('register/', RegisterUserView.as_view(), name='register'),
]
