import sys

import requests

from config import GEMINI_API_KEY, GEMINI_API_URL, GEMINI_MODEL


def list_generation_models(api_key=GEMINI_API_KEY):
    """
    List the Gemini models this API key can call generateContent on.
    Returns model names like 'models/gemini-flash-latest'.
    """
    models = []
    params = {'key': api_key, 'pageSize': 1000}

    while True:
        response = requests.get(f'{GEMINI_API_URL}/models', params=params, timeout=30)
        if response.status_code != 200:
            raise Exception(f'Failed to list models: {response.status_code} - {response.text}')

        data = response.json()
        for model in data.get('models', []):
            if 'generateContent' in model.get('supportedGenerationMethods', []):
                models.append(model['name'])

        page_token = data.get('nextPageToken')
        if not page_token:
            break
        params['pageToken'] = page_token

    return models


def main():
    print('=' * 60)
    print('Gemini models supporting generateContent')
    print('=' * 60)

    try:
        models = list_generation_models()
    except Exception as e:
        print(f'Error listing models: {e}')
        return 1

    for name in models:
        marker = ' (configured)' if name == f'models/{GEMINI_MODEL}' else ''
        print(f'- {name}{marker}')

    print()
    print(f'{len(models)} models available')
    return 0


if __name__ == '__main__':
    sys.exit(main())
