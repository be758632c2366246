from keycove import encrypt, decrypt
from fellowship_backend.settings import settings

def decrypt_api_key(api_key: str):
  return decrypt(api_key,settings.TOKEN_SECRET)

def encrypt_api_key(api_key: str):
  return encrypt(api_key,settings.TOKEN_SECRET)
