import logging
import requests
from django.conf import settings

# Importa os Protocols e Entidades da camada Core
from fundacoes.core.ports import IDistanciaGateway, IGeocodificadorGateway
from fundacoes.core.entities import Distancia, EnderecoCliente, EnderecoGeocodificado
from fundacoes.core.exceptions import DadosInvalidosError, ServicoExternoError

logger = logging.getLogger(__name__)


# ====================================================================
# GATEWAYS: Implementações concretas que se comunicam com APIs externas.
# ====================================================================

class GoogleDistanciaGateway(IDistanciaGateway):
    """
    Gateway para a API Distance Matrix do Google Maps.
    Calcula a distância de carro entre a sede da empresa e a obra.
    """

    def __init__(self, api_key=None, url=None, timeout=None):
        # Sem argumentos, os valores vêm do settings no momento da chamada
        self._api_key = api_key
        self._url = url
        self._timeout = timeout

    @property
    def api_key(self):
        return self._api_key or settings.GOOGLE_MAPS_API_KEY

    @property
    def url(self):
        return self._url or settings.GOOGLE_DISTANCE_MATRIX_URL

    @property
    def timeout(self):
        return self._timeout or settings.HTTP_TIMEOUT

    def calcular(self, origem: str, destino: str) -> Distancia:
        if not self.api_key:
            raise ServicoExternoError("Google Maps API Key não configurada no servidor")

        params = {
            "origins": origem,
            "destinations": destino,
            "mode": "driving",
            "language": "pt-BR",
            "key": self.api_key,
        }

        try:
            response = requests.get(self.url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.warning("Falha ao consultar o Distance Matrix: %s", e)
            raise ServicoExternoError("Falha ao calcular distância", detail=str(e))
        except ValueError as e:
            # Corpo que não é JSON
            raise ServicoExternoError("Falha ao calcular distância", detail=str(e))

        if data.get("status") != "OK":
            raise DadosInvalidosError(
                "Não foi possível calcular a distância",
                detail=data.get("error_message") or data.get("status")
            )

        linhas = data.get("rows") or [{}]
        elementos = linhas[0].get("elements") or [{}]
        elemento = elementos[0]
        if elemento.get("status") != "OK":
            raise DadosInvalidosError(
                "Não foi possível calcular a rota",
                detail=elemento.get("status") or "Rota não encontrada"
            )

        return Distancia(
            metros=elemento["distance"]["value"],
            distancia_texto=elemento["distance"].get("text"),
            duracao_segundos=elemento.get("duration", {}).get("value"),
            duracao_texto=elemento.get("duration", {}).get("text"),
        )


class NominatimGeocodificadorGateway(IGeocodificadorGateway):
    """Geocodificação reversa pelo Nominatim (OpenStreetMap), que exige User-Agent."""

    def __init__(self, url=None, user_agent=None, timeout=None):
        self._url = url
        self._user_agent = user_agent
        self._timeout = timeout

    def reverso(self, latitude: float, longitude: float) -> EnderecoGeocodificado:
        params = {
            "lat": latitude,
            "lon": longitude,
            "format": "json",
            "addressdetails": 1,
            "accept-language": "pt-BR",
        }
        headers = {"User-Agent": self._user_agent or settings.NOMINATIM_USER_AGENT}

        try:
            response = requests.get(
                self._url or settings.NOMINATIM_URL,
                params=params,
                headers=headers,
                timeout=self._timeout or settings.HTTP_TIMEOUT,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning("Erro no geocoding reverso (%s, %s): %s", latitude, longitude, e)
            raise ServicoExternoError("Falha na geocodificação reversa", detail=str(e))

        endereco = (data or {}).get("address")
        if not endereco:
            raise ServicoExternoError("Endereço não encontrado para as coordenadas informadas")

        geo = EnderecoGeocodificado(
            rua=endereco.get("road") or endereco.get("street") or endereco.get("pedestrian"),
            numero=endereco.get("house_number"),
            bairro=endereco.get("neighbourhood") or endereco.get("suburb") or endereco.get("quarter"),
            cidade=(endereco.get("city") or endereco.get("town")
                    or endereco.get("village") or endereco.get("municipality")),
            estado=endereco.get("state"),
            cep=endereco.get("postcode"),
        )
        geo.endereco = EnderecoCliente(
            rua=geo.rua, numero=geo.numero, bairro=geo.bairro,
            cidade=geo.cidade, estado=geo.estado, cep=geo.cep,
        ).formatar() or data.get("display_name")
        return geo
