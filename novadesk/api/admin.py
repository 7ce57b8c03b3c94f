from html import escape
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, Response

from novadesk.core.security import require_admin
from novadesk.models.admin_models import DeleteResult, Listing, ListingResponse
from novadesk.services.admin_service import AdminQueryService

router = APIRouter(dependencies=[Depends(require_admin)])

def get_admin_service(request: Request) -> AdminQueryService:
    return request.app.state.admin_service

@router.get("/api/reservas", response_model=ListingResponse)
async def list_reservas(
    page: Optional[str] = None,
    size: Optional[str] = None,
    service: AdminQueryService = Depends(get_admin_service),
):
    listing = await service.render_listing(page, size)
    return ListingResponse.from_listing(listing)

@router.get("/api/reservas.csv")
async def export_reservas_csv(
    page: Optional[str] = None,
    size: Optional[str] = None,
    service: AdminQueryService = Depends(get_admin_service),
):
    text = await service.export_csv(page, size)
    return Response(
        content=text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="reservas.csv"'},
    )

@router.delete("/api/reservas/{reserva_id}", response_model=DeleteResult)
async def delete_reserva(
    reserva_id: str,
    service: AdminQueryService = Depends(get_admin_service),
):
    return await service.delete_one(reserva_id)

@router.get("/admin", response_class=HTMLResponse)
async def admin_panel(
    page: Optional[str] = None,
    size: Optional[str] = None,
    service: AdminQueryService = Depends(get_admin_service),
):
    listing = await service.render_listing(page, size)
    return HTMLResponse(render_admin_page(listing))

# --- HTML panel ---

PAGE_TEMPLATE = """<!doctype html>
<html lang="es">
<head>
<meta charset="utf-8">
<title>NovaDesk · Reservas</title>
<style>
  body {{ font-family: system-ui, sans-serif; margin: 2rem; }}
  table {{ border-collapse: collapse; width: 100%; }}
  th, td {{ border: 1px solid #ddd; padding: .4rem .6rem; text-align: left; }}
  th {{ background: #f4f4f4; }}
  nav {{ margin: 1rem 0; display: flex; gap: 1rem; align-items: center; }}
</style>
</head>
<body>
<h1>Pre check-ins</h1>
<p>Total: {total} · Página {page} de {page_count}</p>
<nav>{prev_link}{next_link}<a href="/api/reservas.csv?page={page}&amp;size={size}">Descargar CSV</a></nav>
<table>
<thead><tr><th>ID</th><th>Apellido</th><th>Reserva</th><th>Creado (UTC)</th><th></th></tr></thead>
<tbody>
{rows}
</tbody>
</table>
<script>
async function borrar(id) {{
  if (!confirm("¿Eliminar reserva #" + id + "?")) return;
  const res = await fetch("/api/reservas/" + id, {{ method: "DELETE" }});
  const body = await res.json();
  if (body.ok && body.deleted) {{ location.reload(); }} else {{ alert("No se pudo eliminar"); }}
}}
</script>
</body>
</html>
"""

def render_admin_page(listing: Listing) -> str:
    if listing.rows:
        rows = "\n".join(
            "<tr>"
            f"<td>{r.id}</td>"
            f"<td>{escape(r.last_name)}</td>"
            f"<td>{escape(r.booking_number)}</td>"
            f"<td>{escape(r.created_at)}</td>"
            f'<td><button onclick="borrar({r.id})">Eliminar</button></td>'
            "</tr>"
            for r in listing.rows
        )
    else:
        rows = '<tr><td colspan="5">Sin reservas en esta página.</td></tr>'

    prev_link = ""
    if listing.page > 1:
        prev_link = f'<a href="/admin?page={listing.page - 1}&amp;size={listing.size}">« Anterior</a>'
    next_link = ""
    if listing.page < listing.page_count:
        next_link = f'<a href="/admin?page={listing.page + 1}&amp;size={listing.size}">Siguiente »</a>'

    return PAGE_TEMPLATE.format(
        total=listing.total,
        page=listing.page,
        page_count=listing.page_count,
        size=listing.size,
        prev_link=prev_link,
        next_link=next_link,
        rows=rows,
    )
