from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from .models import Role, User


class UserSerializer(serializers.ModelSerializer):
    class_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = (
            'id', 'email', 'name', 'role', 'avatar_url',
            'register_number', 'batch', 'board', 'clazz', 'class_name',
        )

    def get_class_name(self, obj):
        return obj.clazz.name if obj.clazz_id else None


class RegisterUserSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=6)
    role = serializers.ChoiceField(choices=Role.choices)

    class Meta:
        model = User
        fields = ('id', 'email', 'name', 'role', 'avatar_url', 'password')

    def validate_email(self, value):
        email = User.objects.normalize_login(value)
        if User.objects.filter(email=email).exists():
            raise serializers.ValidationError('A user with this email already exists.')
        return email

    def validate_name(self, value):
        value = (value or '').strip()
        if len(value) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters.')
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, **validated_data)


class StudentCreateSerializer(RegisterUserSerializer):
    """Teacher-side "add student" form: role is fixed, school details required."""
    role = serializers.HiddenField(default=Role.STUDENT)
    register_number = serializers.CharField(max_length=40)
    batch = serializers.CharField(max_length=20)
    board = serializers.CharField(max_length=40)

    class Meta(RegisterUserSerializer.Meta):
        fields = RegisterUserSerializer.Meta.fields + (
            'register_number', 'batch', 'board', 'clazz',
        )
        extra_kwargs = {'clazz': {'required': True, 'allow_null': False}}


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['role'] = user.role
        token['name'] = user.name
        return token

    def validate(self, attrs):
        email = attrs.get(self.username_field)
        if email:
            attrs[self.username_field] = User.objects.normalize_login(email)
        return super().validate(attrs)
