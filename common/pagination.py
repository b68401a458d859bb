from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class DataPagination(PageNumberPagination):
    """
    Постраничный вывод в едином конверте: список всегда лежит в ``data``.
    """

    page_size_query_param = 'pageSize'
    max_page_size = 200

    def get_paginated_response(self, data):
        return Response({
            'count': self.page.paginator.count,
            'next': self.get_next_link(),
            'previous': self.get_previous_link(),
            'data': data,
        })

    def get_paginated_response_schema(self, schema):
        paginated = super().get_paginated_response_schema(schema)
        properties = paginated['properties']
        properties['data'] = properties.pop('results')
        paginated['required'] = ['count', 'data']
        return paginated
